# Copyright (c) 2018-2021, Neil Booth
#
# All rights reserved.
#
# Licensed under the the Open BSV License version 3; see LICENCE for details.
#

'''Bitcoin script: opcodes, the script number codec, and decoding of raw script.'''


__all__ = (
    'Ops', 'Script', 'ScriptIterator', 'DecodeError',
    'push_item', 'push_int', 'minimal_push_opcode',
    'item_to_int', 'int_to_item', 'minimal_encoding', 'is_item_minimally_encoded',
    'cast_to_bool', 'bool_items',
)

from enum import IntEnum
from functools import partial
from struct import Struct

from .errors import DecodeError, InvalidNumericEncoding, MinimalEncodingError


class Ops(IntEnum):
    OP_0 = 0x00
    OP_FALSE = OP_0
    OP_PUSHDATA1 = 0x4c
    OP_PUSHDATA2 = 0x4d
    OP_PUSHDATA4 = 0x4e
    OP_1NEGATE = 0x4f
    OP_RESERVED = 0x50
    OP_1 = 0x51
    OP_TRUE = OP_1
    OP_2 = 0x52
    OP_3 = 0x53
    OP_4 = 0x54
    OP_5 = 0x55
    OP_6 = 0x56
    OP_7 = 0x57
    OP_8 = 0x58
    OP_9 = 0x59
    OP_10 = 0x5a
    OP_11 = 0x5b
    OP_12 = 0x5c
    OP_13 = 0x5d
    OP_14 = 0x5e
    OP_15 = 0x5f
    OP_16 = 0x60

    # control
    OP_NOP = 0x61
    OP_VER = 0x62
    OP_IF = 0x63
    OP_NOTIF = 0x64
    OP_VERIF = 0x65
    OP_VERNOTIF = 0x66
    OP_ELSE = 0x67
    OP_ENDIF = 0x68
    OP_VERIFY = 0x69
    OP_RETURN = 0x6a

    # stack ops
    OP_TOALTSTACK = 0x6b
    OP_FROMALTSTACK = 0x6c
    OP_2DROP = 0x6d
    OP_2DUP = 0x6e
    OP_3DUP = 0x6f
    OP_2OVER = 0x70
    OP_2ROT = 0x71
    OP_2SWAP = 0x72
    OP_IFDUP = 0x73
    OP_DEPTH = 0x74
    OP_DROP = 0x75
    OP_DUP = 0x76
    OP_NIP = 0x77
    OP_OVER = 0x78
    OP_PICK = 0x79
    OP_ROLL = 0x7a
    OP_ROT = 0x7b
    OP_SWAP = 0x7c
    OP_TUCK = 0x7d

    # splice ops
    OP_CAT = 0x7e
    OP_SUBSTR = 0x7f
    OP_LEFT = 0x80
    OP_RIGHT = 0x81
    OP_SIZE = 0x82

    # bit logic
    OP_INVERT = 0x83
    OP_AND = 0x84
    OP_OR = 0x85
    OP_XOR = 0x86
    OP_EQUAL = 0x87
    OP_EQUALVERIFY = 0x88
    OP_RESERVED1 = 0x89
    OP_RESERVED2 = 0x8a

    # numeric
    OP_1ADD = 0x8b
    OP_1SUB = 0x8c
    OP_2MUL = 0x8d
    OP_2DIV = 0x8e
    OP_NEGATE = 0x8f
    OP_ABS = 0x90
    OP_NOT = 0x91
    OP_0NOTEQUAL = 0x92

    OP_ADD = 0x93
    OP_SUB = 0x94
    OP_MUL = 0x95
    OP_DIV = 0x96
    OP_MOD = 0x97
    OP_LSHIFT = 0x98
    OP_RSHIFT = 0x99

    OP_BOOLAND = 0x9a
    OP_BOOLOR = 0x9b
    OP_NUMEQUAL = 0x9c
    OP_NUMEQUALVERIFY = 0x9d
    OP_NUMNOTEQUAL = 0x9e
    OP_LESSTHAN = 0x9f
    OP_GREATERTHAN = 0xa0
    OP_LESSTHANOREQUAL = 0xa1
    OP_GREATERTHANOREQUAL = 0xa2
    OP_MIN = 0xa3
    OP_MAX = 0xa4

    OP_WITHIN = 0xa5

    # crypto
    OP_RIPEMD160 = 0xa6
    OP_SHA1 = 0xa7
    OP_SHA256 = 0xa8
    OP_HASH160 = 0xa9
    OP_HASH256 = 0xaa
    OP_CODESEPARATOR = 0xab
    OP_CHECKSIG = 0xac
    OP_CHECKSIGVERIFY = 0xad
    OP_CHECKMULTISIG = 0xae
    OP_CHECKMULTISIGVERIFY = 0xaf

    # expansion
    OP_NOP1 = 0xb0
    OP_CHECKLOCKTIMEVERIFY = 0xb1
    OP_NOP2 = OP_CHECKLOCKTIMEVERIFY
    OP_CHECKSEQUENCEVERIFY = 0xb2
    OP_NOP3 = OP_CHECKSEQUENCEVERIFY
    OP_NOP4 = 0xb3
    OP_NOP5 = 0xb4
    OP_NOP6 = 0xb5
    OP_NOP7 = 0xb6
    OP_NOP8 = 0xb7
    OP_NOP9 = 0xb8
    OP_NOP10 = 0xb9

    # tapscript
    OP_CHECKSIGADD = 0xba


# pylint:disable=E0602,E1101

globals().update(Ops.__members__)
__all__ += tuple(Ops.__members__.keys())

pack_byte = Struct('B').pack
pack_le_uint16 = Struct('<H').pack
pack_le_uint32 = Struct('<I').pack
le_bytes_to_int = partial(int.from_bytes, byteorder='little')

bool_items = [b'', b'\1']


#
# Script numbers
#

def item_to_int(item, *, max_length=None, require_minimal=False):
    '''Returns the value of a stack item interpreted as a sign-magnitude little-endian
    number.

    If max_length is not None, items longer than that many bytes raise
    InvalidNumericEncoding.  If require_minimal is true, items with superfluous
    padding raise MinimalEncodingError.
    '''
    if max_length is not None and len(item) > max_length:
        raise InvalidNumericEncoding(f'number of length {len(item):,d} bytes exceeds the '
                                     f'limit of {max_length:,d} bytes')
    if require_minimal and not is_item_minimally_encoded(item):
        raise MinimalEncodingError(f'number is not minimally encoded: {bytes(item).hex()}')
    if not item:
        return 0
    if item[-1] & 0x80:
        return -le_bytes_to_int(bytes(item[:-1]) + pack_byte(item[-1] & 0x7f))
    return le_bytes_to_int(item)


def int_to_item(value):
    '''Returns the minimal encoding of an integer as a stack item.'''
    value = int(value)
    if value == 0:
        return b''
    magnitude = abs(value)
    encoding = magnitude.to_bytes((magnitude.bit_length() + 7) // 8, 'little')
    # The sign needs its own byte if the magnitude's top bit is taken
    if encoding[-1] & 0x80:
        return encoding + (b'\x80' if value < 0 else b'\0')
    if value < 0:
        return encoding[:-1] + pack_byte(encoding[-1] | 0x80)
    return encoding


def minimal_encoding(item):
    '''Return the minimal encoding of the number represented by item.'''
    return int_to_item(item_to_int(item))


def is_item_minimally_encoded(item):
    '''Return True if item is a minimally-encoded number.'''
    if not item:
        return True
    # The last byte may only be 0x00 or 0x80 if the byte before it needs the sign bit
    if item[-1] & 0x7f == 0:
        return len(item) > 1 and bool(item[-2] & 0x80)
    return True


def cast_to_bool(item):
    '''Cast an item to a Python boolean True or False.

    Because the item is not converted to an integer, no restriction is placed on its size.
    '''
    if not item:
        return False
    # Take care of negative zeroes
    return item[-1] not in {0, 0x80} or any(item[n] for n in range(0, len(item) - 1))


#
# Building scripts
#

def push_item(item):
    '''Returns script bytes to push item on the stack.'''
    item = bytes(item)
    op = minimal_push_opcode(item)
    if op == OP_0 or OP_1NEGATE <= op <= OP_16:
        return pack_byte(op)
    dlen = len(item)
    if op < OP_PUSHDATA1:
        return pack_byte(dlen) + item
    if op == OP_PUSHDATA1:
        return pack_byte(OP_PUSHDATA1) + pack_byte(dlen) + item
    if op == OP_PUSHDATA2:
        return pack_byte(OP_PUSHDATA2) + pack_le_uint16(dlen) + item
    return pack_byte(OP_PUSHDATA4) + pack_le_uint32(dlen) + item


def push_int(value):
    '''Returns script bytes to push a numerical value to the stack.'''
    return push_item(int_to_item(value))


def minimal_push_opcode(item):
    '''Returns the opcode that pushes item on the stack most compactly.  Returns an int.'''
    dlen = len(item)
    if dlen <= 1:
        # Values 1...16 and 0x81 can be pushed specially as a single opcode.
        if dlen == 0:
            return OP_0
        value = item[0]
        if 0 < value <= 16:
            return OP_1 + value - 1
        if value == 0x81:
            return OP_1NEGATE

    if dlen < OP_PUSHDATA1:
        return dlen
    if dlen <= 0xff:
        return OP_PUSHDATA1
    if dlen <= 0xffff:
        return OP_PUSHDATA2
    if dlen <= 0xffffffff:
        return OP_PUSHDATA4
    raise ValueError('item is too large')


def _to_bytes(item):
    '''Convert something (an OP_, an integer, or raw data) to a scriptlet.'''
    if isinstance(item, Ops):
        return pack_byte(item)
    if isinstance(item, (bytes, bytearray)):
        return push_item(item)
    if isinstance(item, int):
        return push_int(item)
    if isinstance(item, Script):
        return bytes(item)
    raise TypeError(f"cannot convert append {item} to a scriptlet")


#
# Decoding
#

class ScriptIterator:
    '''Decodes raw script into instructions.  Each call of ops_and_items() starts again
    from the beginning.'''

    def __init__(self, script):
        self._raw = bytes(script)

    def ops_and_items(self):
        '''A generator.  Iterates over the script yielding (op, item) pairs, stopping when the end
        of the script is reached.

        op is an integer as it might not be a member of Ops.  item is the data pushed as
        bytes for OP_0, direct pushes and OP_PUSHDATA1/2/4, and None for every other
        opcode, including OP_1NEGATE and OP_1 to OP_16.

        Raises DecodeError if the script was truncated.
        '''
        raw = self._raw
        limit = len(raw)
        n = 0

        while n < limit:
            op = raw[n]
            n += 1
            item = None

            if op <= OP_PUSHDATA4:
                if op < OP_PUSHDATA1:
                    dlen = op
                else:
                    # 1, 2 or 4 length bytes
                    size = 1 << (op - OP_PUSHDATA1)
                    if n + size > limit:
                        raise DecodeError(f'{Ops(op).name} length truncated at byte {n:,d}')
                    dlen = le_bytes_to_int(raw[n: n + size])
                    n += size
                if n + dlen > limit:
                    raise DecodeError(f'push of {dlen:,d} bytes at byte {n:,d} exceeds the '
                                      f'script length of {limit:,d} bytes')
                item = raw[n: n + dlen]
                n += dlen

            yield op, item


class Script:
    '''Wraps the raw bytes of a bitcoin script.'''

    def __init__(self, script=b''):
        self._script = bytes(script)

    def __lshift__(self, item):
        '''Return a new script with other appended.

        Item can be bytes or an integer (which are pushed on the stack), an opcode
        such as OP_ADD, or another Script.
        '''
        return Script(self._script + _to_bytes(item))

    def __add__(self, other):
        '''Return the raw concatenation of two scripts.'''
        if not isinstance(other, (Script, bytes, bytearray)):
            return NotImplemented
        return Script(self._script + bytes(other))

    def push_many(self, items):
        '''Return a new script with items, an iterable, appended.'''
        return Script(self._script + b''.join(_to_bytes(item) for item in items))

    def __len__(self):
        '''The length of the script, in bytes.'''
        return len(self._script)

    def __bytes__(self):
        '''The script as bytes.'''
        return self._script

    def __str__(self):
        '''A user-readable script.'''
        return self.to_hex()

    def __repr__(self):
        '''A user-readable script.'''
        return f'Script<"{self.to_hex()}">'

    def __hash__(self):
        '''Hashable.'''
        return hash(self._script)

    def __eq__(self, other):
        '''A script equals anything buffer-like with the same bytes representation.'''
        return (isinstance(other, (bytes, bytearray, memoryview))
                or hasattr(other, '__bytes__')) and self._script == bytes(other)

    def ops_and_items(self):
        '''A generator yielding (op, item) pairs; see ScriptIterator.ops_and_items().'''
        return ScriptIterator(self._script).ops_and_items()

    def ops(self):
        '''A generator.  Iterates over the script yielding ops, stopping when the end
        of the script is reached.

        For push-data opcodes op is the bytes pushed; otherwise it is the op as an integer.

        Raises DecodeError if the script was truncated.
        '''
        for op, item in self.ops_and_items():
            yield item if item is not None else op

    def to_bytes(self):
        '''Return the script as a bytes() object.'''
        return self._script

    def to_hex(self):
        '''Return the script as a hexadecimal string.'''
        return self._script.hex()
