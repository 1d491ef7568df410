# -'- coding: utf-8 -'-
"""
ModR/M addressing for two-operand encodings.

The reg field takes a Register or a 3-bit opcode extension (the ``/0`` ..
``/7`` of ``REX.W + 81 /0``); the r/m field takes a Register (direct
addressing) or a Pointer (memory, with optional SIB and displacement).
"""

from .register import Register
from .pointer import Pointer, mod_reg_rm


def reg_field(reg):
    """Return *reg* if it is usable in the ModR/M reg field.
    """
    if isinstance(reg, Register):
        return reg
    if isinstance(reg, int) and 0 <= reg < 8:
        return reg
    raise TypeError("ModR/M reg field must be a register or opcode extension "
                    "0-7 (got %r)." % (reg,))


def encode_modrm(reg, rm):
    """Return (rex, code) addressing *rm* with *reg* in the reg field.

    *rex* holds only the R/X/B extension bits; a VEX prefix carries the same
    bits inverted.
    """
    reg = reg_field(reg)
    if isinstance(rm, Register):
        if rm.kind == 'rip':
            raise TypeError("rip can only be used to address memory.")
        return mod_reg_rm('dir', reg, rm)
    if isinstance(rm, Pointer):
        return rm.modrm_sib(reg)
    raise TypeError("ModR/M r/m operand must be a Register or Pointer (got %s)."
                    % type(rm).__name__)
