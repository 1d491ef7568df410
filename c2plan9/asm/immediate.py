# -'- coding: utf-8 -'-

import struct


class Immediate(object):
    """An immediate operand.

    Either a numeric *value* embedded in the instruction, or a *symbol* naming
    a branch or call target (eg. ``.LBB0_3`` or ``memcpy@PLT``). Symbolic
    immediates are never byte-encoded; they are resolved to native target
    instructions.
    """
    def __init__(self, value=None, symbol=None):
        if (value is None) == (symbol is None):
            raise TypeError("Immediate requires exactly one of value or symbol.")
        self._value = value
        self._symbol = symbol

    @property
    def value(self):
        return self._value

    @property
    def symbol(self):
        return self._symbol

    @property
    def is_symbolic(self):
        return self._symbol is not None

    def fits(self, bits, signed=True):
        """Return True if the value can be packed in *bits* bits.
        """
        fmt = {8: 'b', 16: 'h', 32: 'i', 64: 'q'}[bits]
        if not signed:
            fmt = fmt.upper()
        try:
            struct.pack('<' + fmt, self._value)
        except struct.error:
            return False
        return True

    def pack(self, bits):
        """Pack the value little-endian into *bits* bits.

        Signed packing is tried first; values that only fit unsigned (eg.
        0xff for imm8) are packed unsigned.
        """
        fmt = {8: 'b', 16: 'h', 32: 'i', 64: 'q'}[bits]
        try:
            return struct.pack('<' + fmt, self._value)
        except struct.error:
            return struct.pack('<' + fmt.upper(), self._value)

    def __eq__(self, x):
        return (isinstance(x, Immediate) and x._value == self._value and
                x._symbol == self._symbol)

    def __ne__(self, x):
        return not self == x

    def __hash__(self):
        return hash((self._value, self._symbol))

    def __repr__(self):
        return "Immediate(%s)" % str(self)

    def __str__(self):
        if self._symbol is not None:
            return self._symbol
        if self._value < 0:
            return str(self._value)
        return '0x%x' % self._value if self._value > 9 else str(self._value)
