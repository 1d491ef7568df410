# -'- coding: utf-8 -'-
"""
64-bit mode registers used by compiler output:

- 64-bit general-purpose registers (RAX, RBX, RCX, RDX, RSI, RDI, RSP, RBP, or R8-R15)
- 32-bit general-purpose registers (EAX, EBX, ECX, EDX, ESI, EDI, ESP, EBP, or R8D-R15D)
- 16-bit general-purpose registers (AX, BX, CX, DX, SI, DI, SP, BP, or R8W-R15W)
- 8-bit general-purpose registers: AL, BL, CL, DL, SIL, DIL, SPL, BPL, and
  R8B-R15B are available using REX prefixes; AL, BL, CL, DL, AH, BH, CH, DH are
  available without using REX prefixes.
- XMM registers (XMM0 through XMM15)
- YMM registers (YMM0 through YMM15), the 256-bit extension of XMM
- RIP, usable only as the base of a memory reference
"""


#   Register definitions
#----------------------------------------

class Register(object):
    """A register operand.

    *kind* is one of 'gp', 'xmm', 'ymm' or 'rip'. Registers are shared,
    immutable singletons; look them up with :func:`get`.
    """
    def __init__(self, val, name, bits, kind='gp', family=None):
        self._val = val
        self._name = name
        self._bits = bits
        self._kind = kind
        self._family = family if family is not None else name

    @property
    def name(self):
        """Register name
        """
        return self._name

    @property
    def bits(self):
        """Register size in bits
        """
        return self._bits

    @property
    def kind(self):
        return self._kind

    @property
    def family(self):
        """Name of the widest register sharing this register's storage
        (eg. 'rdi' for edi, 'ymm3' for xmm3).
        """
        return self._family

    @property
    def number(self):
        """Full 4-bit register number.
        """
        return self._val

    @property
    def val(self):
        """3-bit integer code for this register.
        """
        return self._val & 0b111

    @property
    def rex(self):
        """Bool indicating value of 4th bit of register code
        """
        return self._val & 0b1000 > 0

    @property
    def needs_rex(self):
        """Bool indicating the register can only be encoded with a REX prefix
        present (spl, bpl, sil, dil).
        """
        return self._name in ('spl', 'bpl', 'sil', 'dil')

    @property
    def high_byte(self):
        """Bool indicating ah/bh/ch/dh, which cannot be encoded with REX.
        """
        return self._name in ('ah', 'bh', 'ch', 'dh')

    @property
    def is_vector(self):
        return self._kind in ('xmm', 'ymm')

    def __eq__(self, x):
        return isinstance(x, Register) and x._name == self._name

    def __ne__(self, x):
        return not self == x

    def __hash__(self):
        return hash(self._name)

    def __repr__(self):
        return "Register(0x%x, %s, %d)" % (self._val, self._name, self._bits)

    def __str__(self):
        return self._name


registers = {}

def _define(val, name, bits, kind='gp', family=None):
    reg = Register(val, name, bits, kind, family)
    registers[name] = reg
    return reg


_gp64 = ['rax', 'rcx', 'rdx', 'rbx', 'rsp', 'rbp', 'rsi', 'rdi']
_gp32 = ['eax', 'ecx', 'edx', 'ebx', 'esp', 'ebp', 'esi', 'edi']
_gp16 = ['ax', 'cx', 'dx', 'bx', 'sp', 'bp', 'si', 'di']
_gp8 = ['al', 'cl', 'dl', 'bl', 'spl', 'bpl', 'sil', 'dil']

for i in range(8):
    _define(i, _gp64[i], 64)
    _define(i, _gp32[i], 32, family=_gp64[i])
    _define(i, _gp16[i], 16, family=_gp64[i])
    _define(i, _gp8[i], 8, family=_gp64[i])

# high-byte registers occupy codes 4-7 when no REX prefix is present
for i, name in enumerate(['ah', 'ch', 'dh', 'bh']):
    _define(4 + i, name, 8, family=_gp64[i])

for i in range(8, 16):
    _define(i, 'r%d' % i, 64)
    _define(i, 'r%dd' % i, 32, family='r%d' % i)
    _define(i, 'r%dw' % i, 16, family='r%d' % i)
    _define(i, 'r%db' % i, 8, family='r%d' % i)

for i in range(16):
    _define(i, 'xmm%d' % i, 128, 'xmm', family='ymm%d' % i)
    _define(i, 'ymm%d' % i, 256, 'ymm')

rip = _define(0b101, 'rip', 64, 'rip')

rax, rcx, rdx, rbx = [registers[n] for n in _gp64[:4]]
rsp, rbp, rsi, rdi = [registers[n] for n in _gp64[4:]]
r8, r9, r10, r11, r12, r13, r14, r15 = [registers['r%d' % i] for i in range(8, 16)]
eax = registers['eax']
xmm0 = registers['xmm0']
ymm0 = registers['ymm0']

# 'r8l' is an alias used by some disassemblers
for i in range(8, 16):
    registers['r%dl' % i] = registers['r%db' % i]


def get(name):
    """Return the register named *name* (case-insensitive) or None.
    """
    return registers.get(name.lower())


# Lists of registers used as arguments in the SystemV AMD64 calling convention
argi = [rdi, rsi, rdx, rcx, r8, r9]
argf = [registers['xmm%d' % i] for i in range(8)]
