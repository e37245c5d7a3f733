# Copyright (c) 2021, Neil Booth
#
# All rights reserved.
#
# Licensed under the the Open BSV License version 3; see LICENCE for details.
#

'''The data stack of the script interpreter.'''

__all__ = ('Stack', )


from .errors import StackUnderflow
from .script import item_to_int, int_to_item, cast_to_bool, bool_items


class Stack:
    '''A LIFO of byte strings.

    Items carry no type; an item is read as a number or as a boolean only when an
    operation asks for it.  Numbers are decoded subject to max_number_length bytes and,
    if require_minimal is true, must be minimally encoded.
    '''

    def __init__(self, max_number_length=4, require_minimal=False):
        self.max_number_length = max_number_length
        self.require_minimal = require_minimal
        self._items = []

    def __len__(self):
        return len(self._items)

    def __getitem__(self, x):
        return self._items[x]

    def __eq__(self, other):
        if isinstance(other, Stack):
            other = other._items
        return self._items == other

    def __repr__(self):
        return f'Stack<{[item.hex() for item in self._items]}>'

    def is_empty(self):
        return not self._items

    def require_depth(self, depth):
        if len(self._items) < depth:
            raise StackUnderflow(f'stack depth {len(self._items)} less than required '
                                 f'depth of {depth}')

    def to_number(self, item):
        '''Decode item as a number under this stack's number rules.'''
        return item_to_int(item, max_length=self.max_number_length,
                           require_minimal=self.require_minimal)

    def push(self, item):
        if isinstance(item, (bytearray, memoryview)):
            item = bytes(item)
        elif not isinstance(item, bytes):
            raise TypeError(f'stack items must be bytes, not {type(item).__name__}')
        self._items.append(item)

    def push_num(self, value):
        self._items.append(int_to_item(value))

    def push_bool(self, value):
        self._items.append(bool_items[bool(value)])

    def pop(self):
        self.require_depth(1)
        return self._items.pop()

    def pop_num(self):
        '''Pop the top item as a number.  If it cannot be decoded the stack is unchanged.'''
        self.require_depth(1)
        value = self.to_number(self._items[-1])
        self._items.pop()
        return value

    def top(self):
        '''Return the top item, or None if the stack is empty.'''
        return self._items[-1] if self._items else None

    def is_true(self):
        '''Return True if the stack is non-empty and its top item casts to True.

        This is the test of a successful script execution.
        '''
        return bool(self._items) and cast_to_bool(self._items[-1])

    def clear(self):
        self._items.clear()
