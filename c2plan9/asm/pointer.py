# -'- coding: utf-8 -'-

import struct

from .register import Register, rsp, rbp, rip

#   Instruction Prefixes
#----------------------------------------

class Rex(object):
    pass

rex = Rex()
rex.w = 0b01001000  # 64-bit operands
rex.r = 0b01000100  # Extension of ModR/M reg field to 4 bits
rex.x = 0b01000010  # Extension of SIB index field to 4 bits
rex.b = 0b01000001  # Extension of ModR/M r/m field, SIB base field, or
                    # opcode reg field

#  Note 1: REX prefix always immediately precedes the first opcode byte (or
#  opcode escape byte). All other prefixes come before REX.

#  Note 2: rex.r, rex.x, rex.b actually _become_ the 4th bit for the fields
#  they extend; the original fields themselves still occupy 3 bits within their
#  original byte. VEX prefixes carry the same three bits, inverted.



#     ModR/M byte
#-----------------------------------------

mod_vals = {
    'ind':   0b00000000, # Fetch contents of address specified in R/M section register
    'ind8':  0b01000000, # Same as 'ind' with 8-bit displacement following mod/rm byte
    'ind32': 0b10000000, # Same as 'ind' with 32-bit displacement following mod/rm byte
    'dir':   0b11000000, # Direct addressing; use register directly.
}
def mod_reg_rm(mod, reg, rm):
    """Generate a mod_reg_r/m byte.

    Returns (rex, mod_reg_rm)

    The Mod-Reg-R/M byte consists of three fields:

        mod  reg  r/m
         76  543  210

    The reg field is used either to indicate a particular register as an
    operand, or to hold opcode extensions. In 64-bit mode, mod=00 with
    r/m=101 selects [rip + disp32], and r/m=100 with mod != 11 selects a
    following SIB byte.
    """
    rex_byt = 0
    if rm == 'sib':
        rm = 0b100
    elif rm == 'disp':
        rm = 0b101
    if isinstance(reg, Register):
        if reg.rex:
            rex_byt |= rex.r
        reg = reg.val
    if isinstance(rm, Register):
        if rm.rex:
            rex_byt |= rex.b
        rm = rm.val
    return rex_byt, bytes(bytearray([mod_vals[mod] | reg << 3 | rm]))



#     SIB byte
#-----------------------------------------

def mk_sib(byts, offset, base):
    """Generate SIB byte

    Return (rex, sib)

    byts : 0, 1, 2, or 3
    offset : Register or None
    base : register or 'disp'

    Address is computed as [base] + [offset] * 2^byts
    When base is 'disp', a disp32 follows with no base register.
    When offset is None, no offset is applied.
    """
    rex_byt = 0

    if offset is None:
        offset = rsp
    else:
        if offset.rex:
            rex_byt |= rex.x

    if base == 'disp':
        base = rbp
    else:
        if base.rex:
            rex_byt |= rex.b

    return rex_byt, bytes(bytearray([byts << 6 | offset.val << 3 | base.val]))


sizes = {
    8: 'byte',
    16: 'word',
    32: 'dword',
    64: 'qword',
    80: 'tbyte',
    128: 'xmmword',
    256: 'ymmword',
    512: 'zmmword',
}


class Pointer(object):
    """Representation of an effective memory address::

        [base + index*scale + disp]
        [rip + symbol + disp]

    *bits* is the size of the referenced data when the source supplied a size
    hint (``ymmword ptr``). A rip-relative pointer carries the *symbol* it
    addresses until the constant pool resolves it to a base register and
    offset.
    """
    def __init__(self, base=None, index=None, scale=None, disp=0, bits=None,
                 symbol=None):
        if scale is not None and scale not in (1, 2, 4, 8):
            raise ValueError("Scale must be 1, 2, 4, or 8 (got %r)." % scale)
        if index is not None and scale is None:
            scale = 1
        self._base = base
        self._index = index
        self._scale = scale
        self._disp = disp or 0
        self._bits = bits
        self._symbol = symbol

    @property
    def base(self):
        return self._base

    @property
    def index(self):
        return self._index

    @property
    def scale(self):
        return self._scale

    @property
    def disp(self):
        return self._disp

    @property
    def bits(self):
        """The size of the data referenced by this pointer.
        """
        return self._bits

    @property
    def symbol(self):
        return self._symbol

    @property
    def rip_relative(self):
        return self._base is rip

    def registers(self):
        """Registers read to compute this address.
        """
        return [r for r in (self._base, self._index) if r is not None and r is not rip]

    def rebase(self, base, disp):
        """Return a copy addressing [base + disp] with the same size and no
        symbol. Used to move rip-relative references onto a pool register.
        """
        return Pointer(base=base, disp=disp, bits=self._bits)

    def __eq__(self, x):
        return (isinstance(x, Pointer) and
                (x._base, x._index, x._scale, x._disp, x._bits, x._symbol) ==
                (self._base, self._index, self._scale, self._disp, self._bits, self._symbol))

    def __ne__(self, x):
        return not self == x

    def __hash__(self):
        return hash((self._base, self._index, self._scale, self._disp, self._symbol))

    def __repr__(self):
        return "Pointer(%s)" % str(self)

    def __str__(self):
        parts = []
        if self._base is not None:
            parts.append(self._base.name)
        if self._index is not None:
            if self._scale in (None, 1):
                parts.append(self._index.name)
            else:
                parts.append("%d*%s" % (self._scale, self._index.name))
        if self._symbol is not None:
            parts.append(self._symbol)
        ptr = ' + '.join(parts)
        if self._disp or not parts:
            if self._disp < 0 and parts:
                ptr += ' - 0x%x' % -self._disp
            elif parts:
                ptr += ' + 0x%x' % self._disp
            else:
                ptr = '0x%x' % self._disp
        ptr = '[' + ptr + ']'
        if self._bits is None:
            return ptr
        return sizes[self._bits] + ' ptr ' + ptr

    def modrm_sib(self, reg=None):
        """Generate a string consisting of mod_reg_r/m byte, optional SIB byte,
        and optional displacement bytes.

        The *reg* argument (a Register or 3-bit opcode extension) is placed
        into the modrm.reg field.

        Return tuple (rex, code).

        Note: this method implements the special cases required to match
        GNU output:
        * Using rbp/r13 as r/m or as sib base with no displacement causes
          addition of an 8-bit displacement (0)
        * rsp/r12 as base always requires a SIB byte
        * [disp] alone is encoded through SIB with no base and no index
        * [index*scale + disp] always carries a 32-bit displacement
        """
        if reg is None:
            reg = 0
        if self._symbol is not None:
            raise TypeError("Cannot encode unresolved symbol reference '%s'."
                            % self._symbol)
        for r in self.registers():
            if r.kind != 'gp' or r.bits != 64:
                raise TypeError("Invalid register for pointer: %s" % r.name)

        disp = self._disp
        if self.rip_relative:
            if self._index is not None:
                raise TypeError("Cannot combine rip with an index register.")
            mrex, modrm = mod_reg_rm('ind', reg, 'disp')
            return mrex, modrm + struct.pack('<i', disp)

        base = self._base
        index = self._index
        if index is not None and index.val == 4 and not index.rex:
            raise TypeError("Cannot encode register %s as SIB index." % index.name)

        if base is None:
            # no base register: always 32-bit displacement
            byts = {None: 0, 1: 0, 2: 1, 4: 2, 8: 3}[self._scale]
            mrex, modrm = mod_reg_rm('ind', reg, 'sib')
            srex, sib = mk_sib(byts, index, 'disp')
            return mrex | srex, modrm + sib + pack_disp32(disp)

        if disp == 0 and base.val != 5:
            mod = 'ind'
            disp_code = b''
        elif -128 <= disp <= 127:
            mod = 'ind8'
            disp_code = struct.pack('<b', disp)
        else:
            mod = 'ind32'
            disp_code = pack_disp32(disp)

        if index is None and base.val != 4:
            mrex, modrm = mod_reg_rm(mod, reg, base)
            return mrex, modrm + disp_code

        byts = {None: 0, 1: 0, 2: 1, 4: 2, 8: 3}[self._scale]
        mrex, modrm = mod_reg_rm(mod, reg, 'sib')
        srex, sib = mk_sib(byts, index, base)
        return mrex | srex, modrm + sib + disp_code


def pack_disp32(disp):
    try:
        return struct.pack('<i', disp)
    except struct.error:
        raise TypeError("Displacement 0x%x does not fit in 32 bits." % disp)
