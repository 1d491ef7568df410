# -'- coding: utf-8 -'-
"""
  Overview of intel-64 instructions
---------------------------------------------------


 [  Prefixes  ][  REX/VEX  ][  Opcode  ][  ModR/M  ][  SIB  ][  Disp  ][  Immediate  ]


 All fields except opcode are optional. Each opcode determines the set of
 allowed fields.

 Prefixes:  legacy prefixes (lock, rep, operand-size 0x66, mandatory
            0x66/0xf2/0xf3 prefixes of SSE instructions)
 REX:       1 byte extending register numbers to 4 bits and selecting
            64-bit operand size; always immediately before the opcode
 VEX:       2 or 3 bytes replacing REX and the mandatory prefix for AVX
            instructions; adds a third register operand (vvvv) and the
            vector length bit
 Opcode:    1-3 byte code specifying instruction
 ModR/M:    1 byte specifying source registers for memory addresses
            and sometimes holding opcode extensions as well
 SIB:       1 byte further specifying base, index and scale
 Disp:      1 or 4-byte memory address displacement value added to
            ModR/M address
 Immediate: 1, 2, 4 or 8-byte operand data embedded within instruction



  References
---------------

Machine code
http://www.codeproject.com/Articles/662301/x-Instruction-Encoding-Revealed-Bit-Twiddling-fo
http://wiki.osdev.org/X86-64_Instruction_Encoding
http://ref.x86asm.net/coder64.html

Official, obtuse reference:
http://www.intel.com/content/www/us/en/processors/architectures-software-developer-manuals.html
"""

from .register import Register, registers, argi, argf
from .pointer import Pointer
from .immediate import Immediate
from .instruction import Mnemonic
from .instructions import lookup


def encode(mnemonic, *operands, **kwds):
    """Return the machine code for one instruction.

    Raises TypeError when the mnemonic is unknown or no encoding accepts the
    operands.
    """
    cls = lookup(mnemonic)
    if cls is None:
        raise TypeError("Unknown instruction '%s'" % mnemonic)
    return cls(*operands, **kwds).code
