# Copyright (c) 2018-2021, Neil Booth
#
# All rights reserved.
#
# Licensed under the the Open BSV License version 3; see LICENCE for details.
#

'''Bitcoin script interpreter.'''

__all__ = (
    'InterpreterFlags', 'InterpreterLimits', 'ExecutionContext', 'Interpreter',
    'SMALL_INTEGERS', 'execute', 'is_valid', 'join_parts',
)


import logging
import operator
from enum import IntFlag
from functools import partial

import attr

from .errors import (
    ScriptError, ScriptTooLarge, TooManyOps, ExplicitAbort, UnsupportedOpcode,
    VerifyFailed, EqualVerifyFailed, NumEqualVerifyFailed,
)
# pylint:disable=E0611
from .script import Script, Ops, OP_16, cast_to_bool
from .stack import Stack


logger = logging.getLogger('interpreter')


# The numbers pushed by the small-integer opcodes
SMALL_INTEGERS = dict([(Ops.OP_1NEGATE, -1)]
                      + [(Ops(Ops.OP_1 + n - 1), n) for n in range(1, 17)])


class InterpreterFlags(IntFlag):
    # Numbers read from the stack must be minimally encoded
    REQUIRE_MINIMAL_NUMBERS = 1 << 0


@attr.s(slots=True, frozen=True)
class InterpreterLimits:
    '''Rules to apply to a particular invocation of the interpreter.

    A limit of None means unlimited.  Callers wanting bounded execution time should set
    script_size and ops_per_script.
    '''
    # Class constants
    MAX_SCRIPT_NUM_LENGTH = 4

    # InterpreterFlags
    flags = attr.ib(default=InterpreterFlags(0))
    # In bytes; longer stack items cannot be read as numbers
    script_num_length = attr.ib(default=MAX_SCRIPT_NUM_LENGTH)
    # In bytes, of the combined script
    script_size = attr.ib(default=None)
    # Executed opcodes other than pushes and small-integer constants
    ops_per_script = attr.ib(default=None)

    def make_stack(self):
        '''Return an empty stack that reads numbers according to these limits.'''
        require_minimal = bool(self.flags & InterpreterFlags.REQUIRE_MINIMAL_NUMBERS)
        return Stack(self.script_num_length, require_minimal)

    def validate_script_size(self, size):
        if self.script_size is not None and size > self.script_size:
            raise ScriptTooLarge(f'script length {size:,d} exceeds the limit of '
                                 f'{self.script_size:,d} bytes')

    def validate_op_count(self, count):
        if self.ops_per_script is not None and count > self.ops_per_script:
            raise TooManyOps(f'op count exceeds the limit of {self.ops_per_script:,d}')


InterpreterLimits.STANDARD = InterpreterLimits()
InterpreterLimits.STRICT = InterpreterLimits(
    flags=InterpreterFlags.REQUIRE_MINIMAL_NUMBERS,
    script_size=10_000,
    ops_per_script=500,
)


@attr.s(slots=True)
class ExecutionContext:
    '''The transaction context of the input whose scripts are being executed.

    No supported opcode consults it yet; signature and lock time checks will.'''

    # Signature hash of the spending transaction
    tx_digest = attr.ib(default=None)
    # The index of the input
    input_index = attr.ib(default=None)
    # The value in satoshis of the output being spent
    amount = attr.ib(default=None)


class Interpreter:
    '''Executes a script once against a fresh stack.'''

    def __init__(self, script, limits=None, context=None):
        self.script = script if isinstance(script, Script) else Script(script)
        self.limits = limits or InterpreterLimits.STANDARD
        self.context = context
        self.stack = self.limits.make_stack()
        self.op_count = 0

    def bump_op_count(self, bump):
        self.op_count += bump
        self.limits.validate_op_count(self.op_count)

    def execute(self):
        '''Run the script and return True if it leaves a true value on top of the stack.

        Raises a ScriptError subclass as soon as an instruction fails.
        '''
        self.limits.validate_script_size(len(self.script))

        handlers = self._handlers
        self.stack = self.limits.make_stack()
        self.op_count = 0

        for op, item in self.script.ops_and_items():
            if item is not None:
                self.stack.push(item)
                continue
            # Small-integer constants do not count towards op count.
            if op > OP_16:
                self.bump_op_count(1)
            handlers[op](self)

        result = self.stack.is_true()
        logger.debug(f'script of {len(self.script):,d} bytes executed {self.op_count:,d} '
                     f'ops leaving {len(self.stack):,d} items; result {result}')
        return result

    def is_valid(self):
        '''Return True if the script executes successfully with a true value on top of the
        stack.  Never raises a ScriptError.'''
        try:
            return self.execute()
        except ScriptError as e:
            logger.debug(f'script failed: {e.__class__.__name__}: {e}')
            return False

    #
    # Constants
    #
    def on_push_constant(self, value):
        # ( -- value)
        self.stack.push_num(value)

    #
    # Control
    #
    def on_NOP(self):
        pass

    def on_VERIFY(self):
        # (true -- ) or (false -- false) and return
        self.stack.require_depth(1)
        if not cast_to_bool(self.stack[-1]):
            raise VerifyFailed()
        self.stack.pop()

    def on_RETURN(self):
        raise ExplicitAbort('OP_RETURN encountered')

    def on_unsupported_opcode(self, op):
        raise UnsupportedOpcode(op)

    #
    # Stack operations
    #
    def on_DROP(self):
        # (x -- )
        self.stack.pop()

    def on_DUP(self):
        # (x -- x x)
        self.stack.require_depth(1)
        self.stack.push(self.stack[-1])

    def on_SWAP(self):
        # ( x1 x2 -- x2 x1 )
        self.stack.require_depth(2)
        x2 = self.stack.pop()
        x1 = self.stack.pop()
        self.stack.push(x2)
        self.stack.push(x1)

    def on_DEPTH(self):
        # ( -- stacksize)
        self.stack.push_num(len(self.stack))

    def on_SIZE(self):
        # ( x -- x size(x) )
        self.stack.require_depth(1)
        self.stack.push_num(len(self.stack[-1]))

    #
    # Comparison
    #
    def on_EQUAL(self):
        # (x1 x2 -- bool).  The items are compared as numbers, so b'' equals b'\0'.
        self.on_binary_numeric(operator.eq)

    def on_EQUALVERIFY(self):
        # (x1 x2 -- )
        self.on_EQUAL()
        if not cast_to_bool(self.stack[-1]):
            raise EqualVerifyFailed()
        self.stack.pop()

    #
    # Numeric
    #
    def on_unary_numeric(self, unary_op):
        # (x -- out)
        self.stack.push_num(unary_op(self.stack.pop_num()))

    def on_binary_numeric(self, binary_op):
        # (x1 x2 -- out)
        self.stack.require_depth(2)
        # Decode both before popping so a bad operand leaves the stack unchanged
        x1 = self.stack.to_number(self.stack[-2])
        x2 = self.stack.to_number(self.stack[-1])
        self.stack.pop()
        self.stack.pop()
        self.stack.push_num(binary_op(x1, x2))

    def on_NUMEQUALVERIFY(self):
        # (x1 x2 -- )
        self.on_binary_numeric(operator.eq)
        if not cast_to_bool(self.stack[-1]):
            raise NumEqualVerifyFailed('OP_NUMEQUALVERIFY failed')
        self.stack.pop()

    def on_WITHIN(self):
        # (x min max -- out)    True if x is >= min and < max.
        self.stack.require_depth(3)
        x, mn, mx = (self.stack.to_number(item) for item in self.stack[-3:])
        for _ in range(3):
            self.stack.pop()
        self.stack.push_bool(mn <= x < mx)

    @classmethod
    def bind_handlers(cls):
        handlers = [partial(cls.on_unsupported_opcode, op=op) for op in range(256)]

        #
        # Constants
        #
        for op, value in SMALL_INTEGERS.items():
            handlers[op] = partial(cls.on_push_constant, value=value)

        #
        # Control
        #
        handlers[Ops.OP_NOP] = cls.on_NOP
        handlers[Ops.OP_VERIFY] = cls.on_VERIFY
        handlers[Ops.OP_RETURN] = cls.on_RETURN

        #
        # Stack operations
        #
        handlers[Ops.OP_DROP] = cls.on_DROP
        handlers[Ops.OP_DUP] = cls.on_DUP
        handlers[Ops.OP_SWAP] = cls.on_SWAP
        handlers[Ops.OP_DEPTH] = cls.on_DEPTH
        handlers[Ops.OP_SIZE] = cls.on_SIZE

        #
        # Comparison
        #
        handlers[Ops.OP_EQUAL] = cls.on_EQUAL
        handlers[Ops.OP_EQUALVERIFY] = cls.on_EQUALVERIFY

        #
        # Numeric
        #
        handlers[Ops.OP_1ADD] = partial(cls.on_unary_numeric, unary_op=lambda x: x + 1)
        handlers[Ops.OP_1SUB] = partial(cls.on_unary_numeric, unary_op=lambda x: x - 1)
        handlers[Ops.OP_NEGATE] = partial(cls.on_unary_numeric, unary_op=operator.neg)
        handlers[Ops.OP_ABS] = partial(cls.on_unary_numeric, unary_op=operator.abs)
        handlers[Ops.OP_NOT] = partial(cls.on_unary_numeric, unary_op=operator.not_)
        handlers[Ops.OP_0NOTEQUAL] = partial(cls.on_unary_numeric, unary_op=operator.truth)
        handlers[Ops.OP_ADD] = partial(cls.on_binary_numeric, binary_op=operator.add)
        handlers[Ops.OP_SUB] = partial(cls.on_binary_numeric, binary_op=operator.sub)
        handlers[Ops.OP_BOOLAND] = partial(cls.on_binary_numeric, binary_op=logical_and)
        handlers[Ops.OP_BOOLOR] = partial(cls.on_binary_numeric, binary_op=logical_or)
        handlers[Ops.OP_NUMEQUAL] = partial(cls.on_binary_numeric, binary_op=operator.eq)
        handlers[Ops.OP_NUMEQUALVERIFY] = cls.on_NUMEQUALVERIFY
        handlers[Ops.OP_NUMNOTEQUAL] = partial(cls.on_binary_numeric, binary_op=operator.ne)
        handlers[Ops.OP_LESSTHAN] = partial(cls.on_binary_numeric, binary_op=operator.lt)
        handlers[Ops.OP_GREATERTHAN] = partial(cls.on_binary_numeric, binary_op=operator.gt)
        handlers[Ops.OP_LESSTHANOREQUAL] = partial(cls.on_binary_numeric, binary_op=operator.le)
        handlers[Ops.OP_GREATERTHANOREQUAL] = partial(cls.on_binary_numeric, binary_op=operator.ge)
        handlers[Ops.OP_MIN] = partial(cls.on_binary_numeric, binary_op=min)
        handlers[Ops.OP_MAX] = partial(cls.on_binary_numeric, binary_op=max)
        handlers[Ops.OP_WITHIN] = cls.on_WITHIN

        cls._handlers = handlers


def logical_and(x1, x2):
    return 1 if (x1 and x2) else 0


def logical_or(x1, x2):
    return 1 if (x1 or x2) else 0


Interpreter.bind_handlers()


#
# Entry points
#

def join_parts(unlocking_script, locking_script):
    '''Join an unlocking script (script_sig) and a locking script (script_pubkey) into the
    single script that is executed.  Nothing separates the two parts.'''
    return Script(bytes(unlocking_script) + bytes(locking_script))


def execute(unlocking_script, locking_script, *, limits=None, context=None):
    '''Execute unlocking_script followed by locking_script.

    Returns the truth of the top stack item if the script terminates successfully, and
    raises a ScriptError subclass if something in the script triggered failure.
    '''
    script = join_parts(unlocking_script, locking_script)
    return Interpreter(script, limits, context).execute()


def is_valid(unlocking_script, locking_script, *, limits=None, context=None):
    '''Return True if unlocking_script followed by locking_script is a valid spend: nothing
    triggers failure and the stack ends non-empty with a true top item.'''
    script = join_parts(unlocking_script, locking_script)
    return Interpreter(script, limits, context).is_valid()
