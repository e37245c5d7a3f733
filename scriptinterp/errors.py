# Copyright (c) 2021, Neil Booth
#
# All rights reserved.
#
# Licensed under the the Open BSV License version 3; see LICENCE for details.
#

'''Exception hierarchy.'''

__all__ = (
    'ScriptError', 'DecodeError', 'InterpreterError',
    'StackUnderflow', 'InvalidNumericEncoding', 'MinimalEncodingError',
    'ExplicitAbort', 'UnsupportedOpcode', 'ScriptTooLarge', 'TooManyOps',
    'VerifyFailed', 'EqualVerifyFailed', 'NumEqualVerifyFailed',
)


#
# Exception Hierarchy
#


class ScriptError(Exception):
    '''Base class for script errors.'''


class DecodeError(ScriptError):
    '''Raised when a script is truncated because a pushed item is not all present.'''


class InterpreterError(ScriptError):
    '''Base class for interpreter errors.'''


class ScriptTooLarge(InterpreterError):
    '''Raised when a script is too long.'''


class TooManyOps(InterpreterError):
    '''Raised when a script contains too many operations.'''


class StackUnderflow(InterpreterError):
    '''Raised when an opcode wants to access items beyond the stack depth.'''


class InvalidNumericEncoding(InterpreterError):
    '''Raised when a stack item cannot be read as a number, e.g. because it is too long.'''


class MinimalEncodingError(InvalidNumericEncoding):
    '''Raised when minimal numbers are required and a number is not minimally encoded.'''


class ExplicitAbort(InterpreterError):
    '''OP_RETURN was executed.'''


class UnsupportedOpcode(InterpreterError):
    '''Raised when an opcode with no handler is encountered.'''

    def __init__(self, op):
        super().__init__(op)
        self.op = op

    def __str__(self):
        from .script import Ops

        try:
            name = Ops(self.op).name
        except ValueError:
            name = str(self.op)
        return f'unsupported opcode {name}'


class VerifyFailed(InterpreterError):
    '''OP_VERIFY was executed and the top of stack was zero.'''


class EqualVerifyFailed(VerifyFailed):
    '''OP_EQUALVERIFY was executed and it failed.'''


class NumEqualVerifyFailed(VerifyFailed):
    '''OP_NUMEQUALVERIFY was executed and it failed.'''
