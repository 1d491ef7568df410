# -'- coding: utf-8 -'-
"""
Encoding table. One Mnemonic subclass per supported mnemonic; each class
maps operand signatures to Intel-manual opcode strings. Families of
instructions that share a layout are generated by factory functions.

Modes are listed in order of preference; the first compatible mode wins,
which is how the table reproduces the choices made by GNU as (short
accumulator forms, imm8 sign-extended forms, load form for register moves).
"""

from .instruction import Mnemonic, modes


#   Procedure management and data moving instructions
#----------------------------------------------------------


class push(Mnemonic):
    """Decrements the stack pointer and then stores the source operand on the
    top of the stack.

    =============== ======================================
    src             description
    =============== ======================================
    r64, r/m64      Push src onto stack
    imm8/32         Push sign-extended immediate
    =============== ======================================
    """
    name = 'push'

    modes = modes(
        (('r64',), '50+rd', 'o'),
        (('r/m64',), 'ff /6', 'm'),
        (('r16',), '50+rw', 'o'),
        (('imm8',), '6a ib', 'i'),
        (('imm32',), '68 id', 'i'),
    )

    operand_enc = {
        'm': ['ModRM:r/m (r)'],
        'o': ['opcode +rd (r)'],
        'i': ['imm8/32'],
    }


class pop(Mnemonic):
    """Loads the value from the top of the stack to the location specified with
    the destination operand and then increments the stack pointer.
    """
    name = 'pop'

    modes = modes(
        (('r64',), '58+rd', 'o'),
        (('r/m64',), '8f /0', 'm'),
        (('r16',), '58+rw', 'o'),
    )

    operand_enc = {
        'm': ['ModRM:r/m (w)'],
        'o': ['opcode +rd (w)'],
    }


class mov(Mnemonic):
    """Copies the second operand (source operand) to the first operand
    (destination operand).

    ====== ================= ======================================
    dst    src               description
    ====== ================= ======================================
    r/m8   r/m8, imm8        Copy src value to dst
    r/m16  r/m16, imm16
    r/m32  r/m32, imm32
    r/m64  r/m64, imm32      imm32 is sign-extended
    r64    imm64             only when the value needs all 64 bits
    ====== ================= ======================================
    """
    name = 'mov'

    modes = modes(
        (('r/m8', 'r8'), '88 /r', 'mr'),
        (('r/m16', 'r16'), '89 /r', 'mr'),
        (('r/m32', 'r32'), '89 /r', 'mr'),
        (('r/m64', 'r64'), 'REX.W + 89 /r', 'mr'),

        (('r8', 'r/m8'), '8a /r', 'rm'),
        (('r16', 'r/m16'), '8b /r', 'rm'),
        (('r32', 'r/m32'), '8b /r', 'rm'),
        (('r64', 'r/m64'), 'REX.W + 8b /r', 'rm'),

        (('r8', 'imm8'), 'b0+rb ib', 'oi'),
        (('r16', 'imm16'), 'b8+rw iw', 'oi'),
        (('r32', 'imm32'), 'b8+rd id', 'oi'),

        (('r/m8', 'imm8'), 'c6 /0 ib', 'mi'),
        (('r/m16', 'imm16'), 'c7 /0 iw', 'mi'),
        (('r/m32', 'imm32'), 'c7 /0 id', 'mi'),
        (('r/m64', 'imm32'), 'REX.W + c7 /0 id', 'mi'),
        (('r64', 'imm64'), 'REX.W + b8+rq io', 'oi'),
    )

    operand_enc = {
        'oi': ['opcode +rd (w)', 'imm8/16/32/64'],
        'mi': ['ModRM:r/m (w)', 'imm8/16/32'],
        'mr': ['ModRM:r/m (w)', 'ModRM:reg (r)'],
        'rm': ['ModRM:reg (w)', 'ModRM:r/m (r)'],
    }


class movabs(mov):
    name = 'movabs'


class lea(Mnemonic):
    """Computes the effective address of the second operand (the source
    operand) and stores it in the first operand (destination operand).
    """
    name = 'lea'

    modes = modes(
        (('r16', 'm'), '8d /r', 'rm'),
        (('r32', 'm'), '8d /r', 'rm'),
        (('r64', 'm'), 'REX.W + 8d /r', 'rm'),
    )

    operand_enc = {
        'rm': ['ModRM:reg (w)', 'ModRM:r/m (r)'],
    }


def _extend(name, byte_op, word_op, doc):
    """Create a movzx/movsx instruction class.
    """
    m = modes(
        (('r16', 'r/m8'), '0f%s /r' % byte_op, 'rm'),
        (('r32', 'r/m8'), '0f%s /r' % byte_op, 'rm'),
        (('r64', 'r/m8'), 'REX.W + 0f%s /r' % byte_op, 'rm'),
        (('r32', 'r/m16'), '0f%s /r' % word_op, 'rm'),
        (('r64', 'r/m16'), 'REX.W + 0f%s /r' % word_op, 'rm'),
    )
    op_enc = {'rm': ['ModRM:reg (w)', 'ModRM:r/m (r)']}
    return type(name, (Mnemonic,), {'name': name, 'modes': m,
                                    'operand_enc': op_enc, '__doc__': doc})

movzx = _extend('movzx', 'b6', 'b7', """Move with zero-extension.""")
movsx = _extend('movsx', 'be', 'bf', """Move with sign-extension.""")


class movsxd(Mnemonic):
    """Move doubleword to quadword with sign-extension."""
    name = 'movsxd'

    modes = modes(
        (('r64', 'r/m32'), 'REX.W + 63 /r', 'rm'),
    )

    operand_enc = {'rm': ['ModRM:reg (w)', 'ModRM:r/m (r)']}


class xchg(Mnemonic):
    """Exchange the contents of the two operands."""
    name = 'xchg'

    modes = modes(
        (('rax', 'r64'), 'REX.W + 90+rd', 'ao'),
        (('r64', 'rax'), 'REX.W + 90+rd', 'oa'),
        (('eax', 'r32'), '90+rd', 'ao'),
        (('r32', 'eax'), '90+rd', 'oa'),
        (('r/m8', 'r8'), '86 /r', 'mr'),
        (('r/m16', 'r16'), '87 /r', 'mr'),
        (('r/m32', 'r32'), '87 /r', 'mr'),
        (('r/m64', 'r64'), 'REX.W + 87 /r', 'mr'),
        (('r8', 'r/m8'), '86 /r', 'rm'),
        (('r16', 'r/m16'), '87 /r', 'rm'),
        (('r32', 'r/m32'), '87 /r', 'rm'),
        (('r64', 'r/m64'), 'REX.W + 87 /r', 'rm'),
    )

    operand_enc = {
        'ao': ['AL/AX/EAX/RAX (r,w)', 'opcode +rd (r,w)'],
        'oa': ['opcode +rd (r,w)', 'AL/AX/EAX/RAX (r,w)'],
        'mr': ['ModRM:r/m (r,w)', 'ModRM:reg (r,w)'],
        'rm': ['ModRM:reg (r,w)', 'ModRM:r/m (r,w)'],
    }

    def check_mode(self, sig, mode, arg):
        # 90 is nop, which would not zero the upper half of rax
        if mode == 'eax' and [str(a) for a in self.args] == ['eax', 'eax']:
            return False
        return Mnemonic.check_mode(self, sig, mode, arg)


def _simple(name, opcode, doc):
    """Create a class for an instruction that takes no operands.
    """
    m = modes(((), opcode, None))
    return type(name, (Mnemonic,), {'name': name, 'modes': m,
                                    'operand_enc': {}, '__doc__': doc})

cqo = _simple('cqo', 'REX.W + 99', """Sign-extend rax into rdx:rax.""")
cdq = _simple('cdq', '99', """Sign-extend eax into edx:eax.""")
cdqe = _simple('cdqe', 'REX.W + 98', """Sign-extend eax into rax.""")
cwde = _simple('cwde', '98', """Sign-extend ax into eax.""")
ud2 = _simple('ud2', '0f0b', """Raise an invalid opcode exception.""")
int3 = _simple('int3', 'cc', """Breakpoint trap.""")
pause = _simple('pause', 'f390', """Spin-loop hint.""")
movsb = _simple('movsb', 'a4', """Move byte from [rsi] to [rdi].""")
movsq = _simple('movsq', 'REX.W + a5', """Move quadword from [rsi] to [rdi].""")
stosb = _simple('stosb', 'aa', """Store al at [rdi].""")
stosd = _simple('stosd', 'ab', """Store eax at [rdi].""")
stosq = _simple('stosq', 'REX.W + ab', """Store rax at [rdi].""")


class nop(Mnemonic):
    """No operation. The one-operand form is the multi-byte nop used for
    code alignment.
    """
    name = 'nop'

    modes = modes(
        ((), '90', None),
        (('r/m16',), '0f1f /0', 'm'),
        (('r/m32',), '0f1f /0', 'm'),
    )

    operand_enc = {'m': ['ModRM:r/m (r)']}



#   Arithmetic instructions
#----------------------------------------


def _alu(name, ext, doc):
    """Create a class for one of the eight classic two-operand arithmetic
    instructions (add, or, adc, sbb, and, sub, xor, cmp).

    ====== =============== ======================================
    dst    src             description
    ====== =============== ======================================
    r/m8   r/m8, imm8      dst = dst OP src
    r/m16  r/m16, imm8/16  imm8 is sign-extended
    r/m32  r/m32, imm8/32
    r/m64  r/m64, imm8/32  imm is sign-extended to 64 bits
    ====== =============== ======================================
    """
    base = ext * 8
    m = modes(
        (('al', 'imm8'), '%02x ib' % (base + 4), 'ai'),
        (('r/m8', 'imm8'), '80 /%d ib' % ext, 'mi'),
        (('r/m16', 'imm8'), '83 /%d ib' % ext, 'mi'),
        (('r/m32', 'imm8'), '83 /%d ib' % ext, 'mi'),
        (('r/m64', 'imm8'), 'REX.W + 83 /%d ib' % ext, 'mi'),
        (('ax', 'imm16'), '%02x iw' % (base + 5), 'ai'),
        (('eax', 'imm32'), '%02x id' % (base + 5), 'ai'),
        (('rax', 'imm32'), 'REX.W + %02x id' % (base + 5), 'ai'),
        (('r/m16', 'imm16'), '81 /%d iw' % ext, 'mi'),
        (('r/m32', 'imm32'), '81 /%d id' % ext, 'mi'),
        (('r/m64', 'imm32'), 'REX.W + 81 /%d id' % ext, 'mi'),

        (('r/m8', 'r8'), '%02x /r' % base, 'mr'),
        (('r/m16', 'r16'), '%02x /r' % (base + 1), 'mr'),
        (('r/m32', 'r32'), '%02x /r' % (base + 1), 'mr'),
        (('r/m64', 'r64'), 'REX.W + %02x /r' % (base + 1), 'mr'),

        (('r8', 'r/m8'), '%02x /r' % (base + 2), 'rm'),
        (('r16', 'r/m16'), '%02x /r' % (base + 3), 'rm'),
        (('r32', 'r/m32'), '%02x /r' % (base + 3), 'rm'),
        (('r64', 'r/m64'), 'REX.W + %02x /r' % (base + 3), 'rm'),
    )
    op_enc = {
        'ai': ['AL/AX/EAX/RAX (r,w)', 'imm8/16/32'],
        'mi': ['ModRM:r/m (r,w)', 'imm8/16/32'],
        'mr': ['ModRM:r/m (r,w)', 'ModRM:reg (r)'],
        'rm': ['ModRM:reg (r,w)', 'ModRM:r/m (r)'],
    }
    return type(name, (Mnemonic,), {'name': name, 'modes': m,
                                    'operand_enc': op_enc, '__doc__': doc})

add = _alu('add', 0, """Integer addition.""")
or_ = _alu('or', 1, """Bitwise inclusive OR.""")
adc = _alu('adc', 2, """Add with carry.""")
sbb = _alu('sbb', 3, """Integer subtraction with borrow.""")
and_ = _alu('and', 4, """Bitwise AND.""")
sub = _alu('sub', 5, """Integer subtraction.""")
xor = _alu('xor', 6, """Bitwise exclusive OR.""")
cmp = _alu('cmp', 7, """Compare two operands; sets flags as sub does.""")


class test(Mnemonic):
    """Computes the bit-wise logical AND of first operand and the second
    operand and sets the SF, ZF, and PF status flags according to the result.
    There is no sign-extended imm8 form.
    """
    name = 'test'

    modes = modes(
        (('al', 'imm8'), 'a8 ib', 'ai'),
        (('ax', 'imm16'), 'a9 iw', 'ai'),
        (('eax', 'imm32'), 'a9 id', 'ai'),
        (('rax', 'imm32'), 'REX.W + a9 id', 'ai'),
        (('r/m8', 'imm8'), 'f6 /0 ib', 'mi'),
        (('r/m16', 'imm16'), 'f7 /0 iw', 'mi'),
        (('r/m32', 'imm32'), 'f7 /0 id', 'mi'),
        (('r/m64', 'imm32'), 'REX.W + f7 /0 id', 'mi'),
        (('r/m8', 'r8'), '84 /r', 'mr'),
        (('r/m16', 'r16'), '85 /r', 'mr'),
        (('r/m32', 'r32'), '85 /r', 'mr'),
        (('r/m64', 'r64'), 'REX.W + 85 /r', 'mr'),
    )

    operand_enc = {
        'ai': ['AL/AX/EAX/RAX (r)', 'imm8/16/32'],
        'mi': ['ModRM:r/m (r)', 'imm8/16/32'],
        'mr': ['ModRM:r/m (r)', 'ModRM:reg (r)'],
    }


def _unary(name, byte_op, op, ext, doc):
    """Create a class for a one-operand instruction on r/m (inc, dec, neg,
    not, mul, div, ...).
    """
    m = modes(
        (('r/m8',), '%s /%d' % (byte_op, ext), 'm'),
        (('r/m16',), '%s /%d' % (op, ext), 'm'),
        (('r/m32',), '%s /%d' % (op, ext), 'm'),
        (('r/m64',), 'REX.W + %s /%d' % (op, ext), 'm'),
    )
    op_enc = {'m': ['ModRM:r/m (r,w)']}
    return type(name, (Mnemonic,), {'name': name, 'modes': m,
                                    'operand_enc': op_enc, '__doc__': doc})

inc = _unary('inc', 'fe', 'ff', 0, """Add 1 to the operand.""")
dec = _unary('dec', 'fe', 'ff', 1, """Subtract 1 from the operand.""")
not_ = _unary('not', 'f6', 'f7', 2, """One's complement negation.""")
neg = _unary('neg', 'f6', 'f7', 3, """Two's complement negation.""")
mul = _unary('mul', 'f6', 'f7', 4, """Unsigned multiply of rax by the operand.""")
div = _unary('div', 'f6', 'f7', 6, """Unsigned divide of rdx:rax by the operand.""")
idiv = _unary('idiv', 'f6', 'f7', 7, """Signed divide of rdx:rax by the operand.""")


class imul(Mnemonic):
    """Performs a signed multiplication of two operands. This instruction has
    three forms, depending on the number of operands.

    * One-operand form: rdx:rax = rax * src
    * Two-operand form: dst = dst * src
    * Three-operand form: dst = src1 * imm
    """
    name = 'imul'

    modes = modes(
        (('r/m8',), 'f6 /5', 'm'),
        (('r/m16',), 'f7 /5', 'm'),
        (('r/m32',), 'f7 /5', 'm'),
        (('r/m64',), 'REX.W + f7 /5', 'm'),

        (('r16', 'r/m16'), '0faf /r', 'rm'),
        (('r32', 'r/m32'), '0faf /r', 'rm'),
        (('r64', 'r/m64'), 'REX.W + 0faf /r', 'rm'),

        (('r16', 'r/m16', 'imm8'), '6b /r ib', 'rmi'),
        (('r32', 'r/m32', 'imm8'), '6b /r ib', 'rmi'),
        (('r64', 'r/m64', 'imm8'), 'REX.W + 6b /r ib', 'rmi'),

        (('r16', 'r/m16', 'imm16'), '69 /r iw', 'rmi'),
        (('r32', 'r/m32', 'imm32'), '69 /r id', 'rmi'),
        (('r64', 'r/m64', 'imm32'), 'REX.W + 69 /r id', 'rmi'),
    )

    operand_enc = {
        'm': ['ModRM:r/m (r)'],
        'rm': ['ModRM:reg (r,w)', 'ModRM:r/m (r)'],
        'rmi': ['ModRM:reg (r,w)', 'ModRM:r/m (r)', 'imm8/16/32'],
    }


def _shift(name, ext, doc):
    """Create a shift/rotate instruction class. The shift count is 1, cl, or
    an imm8.
    """
    m = modes(
        (('r/m8', '1'), 'd0 /%d' % ext, 'm1'),
        (('r/m16', '1'), 'd1 /%d' % ext, 'm1'),
        (('r/m32', '1'), 'd1 /%d' % ext, 'm1'),
        (('r/m64', '1'), 'REX.W + d1 /%d' % ext, 'm1'),
        (('r/m8', 'cl'), 'd2 /%d' % ext, 'mc'),
        (('r/m16', 'cl'), 'd3 /%d' % ext, 'mc'),
        (('r/m32', 'cl'), 'd3 /%d' % ext, 'mc'),
        (('r/m64', 'cl'), 'REX.W + d3 /%d' % ext, 'mc'),
        (('r/m8', 'imm8'), 'c0 /%d ib' % ext, 'mi'),
        (('r/m16', 'imm8'), 'c1 /%d ib' % ext, 'mi'),
        (('r/m32', 'imm8'), 'c1 /%d ib' % ext, 'mi'),
        (('r/m64', 'imm8'), 'REX.W + c1 /%d ib' % ext, 'mi'),
    )
    op_enc = {
        'm1': ['ModRM:r/m (r,w)', '1'],
        'mc': ['ModRM:r/m (r,w)', 'CL (r)'],
        'mi': ['ModRM:r/m (r,w)', 'imm8'],
    }
    return type(name, (Mnemonic,), {'name': name, 'modes': m,
                                    'operand_enc': op_enc, '__doc__': doc})

rol = _shift('rol', 0, """Rotate left.""")
ror = _shift('ror', 1, """Rotate right.""")
shl = _shift('shl', 4, """Shift logical left.""")
sal = _shift('sal', 4, """Shift arithmetic left (same as shl).""")
shr = _shift('shr', 5, """Shift logical right.""")
sar = _shift('sar', 7, """Shift arithmetic right.""")


def _bitscan(name, opcode, doc):
    m = modes(
        (('r16', 'r/m16'), opcode + ' /r', 'rm'),
        (('r32', 'r/m32'), opcode + ' /r', 'rm'),
        (('r64', 'r/m64'), 'REX.W + ' + opcode + ' /r', 'rm'),
    )
    op_enc = {'rm': ['ModRM:reg (w)', 'ModRM:r/m (r)']}
    return type(name, (Mnemonic,), {'name': name, 'modes': m,
                                    'operand_enc': op_enc, '__doc__': doc})

bsf = _bitscan('bsf', '0fbc', """Bit scan forward.""")
bsr = _bitscan('bsr', '0fbd', """Bit scan reverse.""")
tzcnt = _bitscan('tzcnt', 'f30fbc', """Count trailing zero bits.""")
lzcnt = _bitscan('lzcnt', 'f30fbd', """Count leading zero bits.""")
popcnt = _bitscan('popcnt', 'f30fb8', """Count set bits.""")


class bt(Mnemonic):
    """Store the selected bit in CF."""
    name = 'bt'

    modes = modes(
        (('r/m32', 'r32'), '0fa3 /r', 'mr'),
        (('r/m64', 'r64'), 'REX.W + 0fa3 /r', 'mr'),
        (('r/m32', 'imm8'), '0fba /4 ib', 'mi'),
        (('r/m64', 'imm8'), 'REX.W + 0fba /4 ib', 'mi'),
    )

    operand_enc = {
        'mr': ['ModRM:r/m (r)', 'ModRM:reg (r)'],
        'mi': ['ModRM:r/m (r)', 'imm8'],
    }



#   Conditional move and set
#----------------------------------------

conditions = [
    ('o', 0), ('no', 1), ('b', 2), ('c', 2), ('nae', 2), ('ae', 3), ('nb', 3),
    ('nc', 3), ('e', 4), ('z', 4), ('ne', 5), ('nz', 5), ('be', 6), ('na', 6),
    ('a', 7), ('nbe', 7), ('s', 8), ('ns', 9), ('p', 10), ('pe', 10),
    ('np', 11), ('po', 11), ('l', 12), ('nge', 12), ('ge', 13), ('nl', 13),
    ('le', 14), ('ng', 14), ('g', 15), ('nle', 15),
]


def _cmovcc(cc, code):
    name = 'cmov' + cc
    op = '0f%02x' % (0x40 | code)
    m = modes(
        (('r16', 'r/m16'), op + ' /r', 'rm'),
        (('r32', 'r/m32'), op + ' /r', 'rm'),
        (('r64', 'r/m64'), 'REX.W + ' + op + ' /r', 'rm'),
    )
    op_enc = {'rm': ['ModRM:reg (r,w)', 'ModRM:r/m (r)']}
    return type(name, (Mnemonic,), {'name': name, 'modes': m, 'operand_enc': op_enc,
                                    '__doc__': "Conditional move if %s." % cc})


def _setcc(cc, code):
    name = 'set' + cc
    m = modes(
        (('r/m8',), '0f%02x /0' % (0x90 | code), 'm'),
    )
    op_enc = {'m': ['ModRM:r/m (w)']}
    return type(name, (Mnemonic,), {'name': name, 'modes': m, 'operand_enc': op_enc,
                                    '__doc__': "Set byte if %s." % cc})



#   SSE instructions (legacy encoding)
#----------------------------------------

_sse_rm = {'rm': ['ModRM:reg (w)', 'ModRM:r/m (r)'],
           'mr': ['ModRM:r/m (w)', 'ModRM:reg (r)'],
           'rmi': ['ModRM:reg (w)', 'ModRM:r/m (r)', 'imm8'],
           'mi': ['ModRM:r/m (r,w)', 'imm8']}

# arithmetic forms also read the destination
_sse_arith = {'rm': ['ModRM:reg (r,w)', 'ModRM:r/m (r)'],
              'rmi': ['ModRM:reg (r,w)', 'ModRM:r/m (r)', 'imm8'],
              'mi': ['ModRM:r/m (r,w)', 'imm8']}

# packed forms that overwrite the destination without reading it
_sse_write_only = ('sqrtps', 'sqrtpd', 'cvtdq2ps', 'cvtps2dq', 'cvttps2dq', 'pshufd',
                   'roundps', 'roundpd')


def _sse(name, opcode, src='xmm2/m128', dst='xmm1', imm=False, ext=None):
    """Create a legacy SSE instruction class: dst = dst OP src.
    """
    enc = _sse_rm if name in _sse_write_only else _sse_arith
    if ext is not None:
        m = modes(((dst, 'imm8'), '%s /%d ib' % (opcode, ext), 'mi'))
    elif imm:
        m = modes(((dst, src, 'imm8'), opcode + ' /r ib', 'rmi'))
    else:
        m = modes(((dst, src), opcode + ' /r', 'rm'))
    return type(name, (Mnemonic,), {'name': name, 'modes': m, 'operand_enc': enc})


def _sse_move(name, load, store, size=128):
    """Create a legacy SSE move class with a load form and a store form.
    """
    m = modes(
        (('xmm1', 'xmm2/m%d' % size), load + ' /r', 'rm'),
        (('m%d' % size, 'xmm1'), store + ' /r', 'mr'),
    )
    return type(name, (Mnemonic,), {'name': name, 'modes': m, 'operand_enc': _sse_rm})


class movd(Mnemonic):
    """Move doubleword between a general-purpose register or memory and an
    xmm register.
    """
    name = 'movd'

    modes = modes(
        (('xmm1', 'r/m32'), '660f6e /r', 'rm'),
        (('r/m32', 'xmm1'), '660f7e /r', 'mr'),
    )

    operand_enc = _sse_rm


class movq(Mnemonic):
    """Move quadword between xmm registers, memory and general-purpose
    registers.
    """
    name = 'movq'

    modes = modes(
        (('xmm1', 'xmm2/m64'), 'f30f7e /r', 'rm'),
        (('m64', 'xmm1'), '660fd6 /r', 'mr'),
        (('xmm1', 'r64'), 'REX.W + 660f6e /r', 'rm'),
        (('r64', 'xmm1'), 'REX.W + 660f7e /r', 'mr'),
    )

    operand_enc = _sse_rm


# (name, prefix, opcode, source operand) for dst = dst OP src forms
_sse_ops = [
    ('addps', '', '58', 'xmm2/m128'), ('addpd', '66', '58', 'xmm2/m128'),
    ('addss', 'f3', '58', 'xmm2/m32'), ('addsd', 'f2', '58', 'xmm2/m64'),
    ('mulps', '', '59', 'xmm2/m128'), ('mulpd', '66', '59', 'xmm2/m128'),
    ('mulss', 'f3', '59', 'xmm2/m32'), ('mulsd', 'f2', '59', 'xmm2/m64'),
    ('subps', '', '5c', 'xmm2/m128'), ('subpd', '66', '5c', 'xmm2/m128'),
    ('subss', 'f3', '5c', 'xmm2/m32'), ('subsd', 'f2', '5c', 'xmm2/m64'),
    ('divps', '', '5e', 'xmm2/m128'), ('divpd', '66', '5e', 'xmm2/m128'),
    ('divss', 'f3', '5e', 'xmm2/m32'), ('divsd', 'f2', '5e', 'xmm2/m64'),
    ('minps', '', '5d', 'xmm2/m128'), ('minpd', '66', '5d', 'xmm2/m128'),
    ('minss', 'f3', '5d', 'xmm2/m32'), ('minsd', 'f2', '5d', 'xmm2/m64'),
    ('maxps', '', '5f', 'xmm2/m128'), ('maxpd', '66', '5f', 'xmm2/m128'),
    ('maxss', 'f3', '5f', 'xmm2/m32'), ('maxsd', 'f2', '5f', 'xmm2/m64'),
    ('sqrtps', '', '51', 'xmm2/m128'), ('sqrtpd', '66', '51', 'xmm2/m128'),
    ('sqrtss', 'f3', '51', 'xmm2/m32'), ('sqrtsd', 'f2', '51', 'xmm2/m64'),
    ('andps', '', '54', 'xmm2/m128'), ('andpd', '66', '54', 'xmm2/m128'),
    ('andnps', '', '55', 'xmm2/m128'), ('andnpd', '66', '55', 'xmm2/m128'),
    ('orps', '', '56', 'xmm2/m128'), ('orpd', '66', '56', 'xmm2/m128'),
    ('xorps', '', '57', 'xmm2/m128'), ('xorpd', '66', '57', 'xmm2/m128'),
    ('unpcklps', '', '14', 'xmm2/m128'), ('unpckhps', '', '15', 'xmm2/m128'),
    ('unpcklpd', '66', '14', 'xmm2/m128'), ('unpckhpd', '66', '15', 'xmm2/m128'),
    ('cvtss2sd', 'f3', '5a', 'xmm2/m32'), ('cvtsd2ss', 'f2', '5a', 'xmm2/m64'),
    ('cvtdq2ps', '', '5b', 'xmm2/m128'), ('cvtps2dq', '66', '5b', 'xmm2/m128'),
    ('cvttps2dq', 'f3', '5b', 'xmm2/m128'),
    ('ucomiss', '', '2e', 'xmm2/m32'), ('ucomisd', '66', '2e', 'xmm2/m64'),
    ('comiss', '', '2f', 'xmm2/m32'), ('comisd', '66', '2f', 'xmm2/m64'),
    ('paddb', '66', 'fc', 'xmm2/m128'), ('paddw', '66', 'fd', 'xmm2/m128'),
    ('paddd', '66', 'fe', 'xmm2/m128'), ('paddq', '66', 'd4', 'xmm2/m128'),
    ('psubb', '66', 'f8', 'xmm2/m128'), ('psubw', '66', 'f9', 'xmm2/m128'),
    ('psubd', '66', 'fa', 'xmm2/m128'), ('psubq', '66', 'fb', 'xmm2/m128'),
    ('pmullw', '66', 'd5', 'xmm2/m128'), ('pmuludq', '66', 'f4', 'xmm2/m128'),
    ('pmulld', '66', '38 40', 'xmm2/m128'),
    ('pand', '66', 'db', 'xmm2/m128'), ('pandn', '66', 'df', 'xmm2/m128'),
    ('por', '66', 'eb', 'xmm2/m128'), ('pxor', '66', 'ef', 'xmm2/m128'),
    ('pcmpeqb', '66', '74', 'xmm2/m128'), ('pcmpeqw', '66', '75', 'xmm2/m128'),
    ('pcmpeqd', '66', '76', 'xmm2/m128'), ('pcmpgtd', '66', '66', 'xmm2/m128'),
    ('pmaxsd', '66', '38 3d', 'xmm2/m128'), ('pminsd', '66', '38 39', 'xmm2/m128'),
    ('pshufb', '66', '38 00', 'xmm2/m128'),
    ('punpckldq', '66', '62', 'xmm2/m128'), ('punpckhdq', '66', '6a', 'xmm2/m128'),
    ('punpcklqdq', '66', '6c', 'xmm2/m128'), ('punpckhqdq', '66', '6d', 'xmm2/m128'),
    ('pmaddwd', '66', 'f5', 'xmm2/m128'),
]

# (name, prefix, opcode, source operand) for dst = OP(src, imm8) forms
_sse_imm_ops = [
    ('shufps', '', 'c6', 'xmm2/m128'), ('shufpd', '66', 'c6', 'xmm2/m128'),
    ('cmpps', '', 'c2', 'xmm2/m128'), ('cmppd', '66', 'c2', 'xmm2/m128'),
    ('cmpss', 'f3', 'c2', 'xmm2/m32'), ('cmpsd', 'f2', 'c2', 'xmm2/m64'),
    ('pshufd', '66', '70', 'xmm2/m128'),
    ('blendps', '66', '3a 0c', 'xmm2/m128'), ('blendpd', '66', '3a 0d', 'xmm2/m128'),
    ('roundps', '66', '3a 08', 'xmm2/m128'), ('roundpd', '66', '3a 09', 'xmm2/m128'),
    ('roundss', '66', '3a 0a', 'xmm2/m32'), ('roundsd', '66', '3a 0b', 'xmm2/m64'),
    ('palignr', '66', '3a 0f', 'xmm2/m128'),
]

# (name, opcode, extension) for packed shifts by immediate
_sse_shift_ops = [
    ('psrlw', '660f71', 2), ('psraw', '660f71', 4), ('psllw', '660f71', 6),
    ('psrld', '660f72', 2), ('psrad', '660f72', 4), ('pslld', '660f72', 6),
    ('psrlq', '660f73', 2), ('psrldq', '660f73', 3), ('psllq', '660f73', 6),
    ('pslldq', '660f73', 7),
]


def _sse_opcode(prefix, opcode):
    return prefix + '0f' + opcode.replace(' ', '')


movups = _sse_move('movups', '0f10', '0f11')
movaps = _sse_move('movaps', '0f28', '0f29')
movupd = _sse_move('movupd', '660f10', '660f11')
movapd = _sse_move('movapd', '660f28', '660f29')
movdqu = _sse_move('movdqu', 'f30f6f', 'f30f7f')
movdqa = _sse_move('movdqa', '660f6f', '660f7f')
movss = _sse_move('movss', 'f30f10', 'f30f11', size=32)
movsd = _sse_move('movsd', 'f20f10', 'f20f11', size=64)
movntps = type('movntps', (Mnemonic,), {
    'name': 'movntps', 'operand_enc': _sse_rm,
    'modes': modes((('m128', 'xmm1'), '0f2b /r', 'mr'))})


class cvtsi2ss(Mnemonic):
    """Convert a signed integer to a scalar single-precision float."""
    name = 'cvtsi2ss'

    modes = modes(
        (('xmm1', 'r/m32'), 'f30f2a /r', 'rm'),
        (('xmm1', 'r/m64'), 'REX.W + f30f2a /r', 'rm'),
    )

    operand_enc = _sse_rm


class cvtsi2sd(Mnemonic):
    """Convert a signed integer to a scalar double-precision float."""
    name = 'cvtsi2sd'

    modes = modes(
        (('xmm1', 'r/m32'), 'f20f2a /r', 'rm'),
        (('xmm1', 'r/m64'), 'REX.W + f20f2a /r', 'rm'),
    )

    operand_enc = _sse_rm


def _sse_to_int(name, opcode, size):
    m = modes(
        (('r32', 'xmm1/m%d' % size), opcode + ' /r', 'rm'),
        (('r64', 'xmm1/m%d' % size), 'REX.W + ' + opcode + ' /r', 'rm'),
    )
    return type(name, (Mnemonic,), {'name': name, 'modes': m, 'operand_enc': _sse_rm})

cvttss2si = _sse_to_int('cvttss2si', 'f30f2c', 32)
cvttsd2si = _sse_to_int('cvttsd2si', 'f20f2c', 64)
cvtss2si = _sse_to_int('cvtss2si', 'f30f2d', 32)
cvtsd2si = _sse_to_int('cvtsd2si', 'f20f2d', 64)

movmskps = type('movmskps', (Mnemonic,), {
    'name': 'movmskps', 'operand_enc': _sse_rm,
    'modes': modes((('r32', 'xmm2'), '0f50 /r', 'rm'))})
pmovmskb = type('pmovmskb', (Mnemonic,), {
    'name': 'pmovmskb', 'operand_enc': _sse_rm,
    'modes': modes((('r32', 'xmm2'), '660fd7 /r', 'rm'))})



#   AVX / AVX2 / FMA instructions (VEX encoding)
#--------------------------------------------------

_vex_enc = {
    'rm': ['ModRM:reg (w)', 'ModRM:r/m (r)'],
    'mr': ['ModRM:r/m (w)', 'ModRM:reg (r)'],
    'rvm': ['ModRM:reg (w)', 'VEX.vvvv (r)', 'ModRM:r/m (r)'],
    'fma': ['ModRM:reg (r,w)', 'VEX.vvvv (r)', 'ModRM:r/m (r)'],
    'mvr': ['ModRM:r/m (w)', 'VEX.vvvv (r)', 'ModRM:reg (r)'],
    'rmi': ['ModRM:reg (w)', 'ModRM:r/m (r)', 'imm8'],
    'mri': ['ModRM:r/m (w)', 'ModRM:reg (r)', 'imm8'],
    'rvmi': ['ModRM:reg (w)', 'VEX.vvvv (r)', 'ModRM:r/m (r)', 'imm8'],
    'rvmr': ['ModRM:reg (w)', 'VEX.vvvv (r)', 'ModRM:r/m (r)', 'imm8[7:4]'],
    'vmi': ['VEX.vvvv (w)', 'ModRM:r/m (r)', 'imm8'],
}


def _vex_fields(pp, mp, w, l):
    fields = ['VEX', l]
    if pp:
        fields.append(pp)
    fields.append(mp)
    fields.append(w)
    return '.'.join(fields)


def _avx_class(name, entries, doc=None):
    m = modes(*entries)
    d = {'name': name, 'modes': m, 'operand_enc': _vex_enc}
    if doc is not None:
        d['__doc__'] = doc
    return type(name, (Mnemonic,), d)


def _avx(name, pp, mp, opcode, form='rvm', w='WIG', sizes=(128, 256), doc=None):
    """Create a packed AVX instruction class with 128- and 256-bit forms.

    *form* selects the operand layout:

    ====== =============================== ============================
    form   operands                        example
    ====== =============================== ============================
    rvm    xmm1, xmm2, xmm3/m128           vaddps
    rm     xmm1, xmm2/m128                 vsqrtps
    rvmi   xmm1, xmm2, xmm3/m128, imm8     vshufps
    rmi    xmm1, xmm2/m128, imm8           vpshufd
    rvmr   xmm1, xmm2, xmm3/m128, xmm4     vblendvps
    ====== =============================== ============================
    """
    entries = []
    for size in sizes:
        r = 'xmm' if size == 128 else 'ymm'
        op = '%s %s /r' % (_vex_fields(pp, mp, w, str(size)), opcode)
        if form == 'rvm':
            entries.append(((r + '1', r + '2', '%s3/m%d' % (r, size)), op, 'rvm'))
        elif form == 'rm':
            entries.append(((r + '1', '%s2/m%d' % (r, size)), op, 'rm'))
        elif form == 'rvmi':
            entries.append(((r + '1', r + '2', '%s3/m%d' % (r, size), 'imm8'), op + ' ib', 'rvmi'))
        elif form == 'rmi':
            entries.append(((r + '1', '%s2/m%d' % (r, size), 'imm8'), op + ' ib', 'rmi'))
        elif form == 'rvmr':
            entries.append(((r + '1', r + '2', '%s3/m%d' % (r, size), r + '4'), op + ' /is4', 'rvmr'))
        else:
            raise ValueError("Unknown AVX form '%s'" % form)
    return _avx_class(name, entries, doc)


def _avx_scalar(name, pp, mp, opcode, size, form='rvm', w='WIG'):
    """Create a scalar AVX instruction class (xmm1, xmm2, xmm3/m32|m64).
    """
    op = '%s %s /r' % (_vex_fields(pp, mp, w, 'LIG'), opcode)
    if form == 'rvm':
        entries = [(('xmm1', 'xmm2', 'xmm3/m%d' % size), op, 'rvm')]
    elif form == 'rm':
        entries = [(('xmm1', 'xmm2/m%d' % size), op, 'rm')]
    elif form == 'rvmi':
        entries = [(('xmm1', 'xmm2', 'xmm3/m%d' % size, 'imm8'), op + ' ib', 'rvmi')]
    else:
        raise ValueError("Unknown AVX form '%s'" % form)
    return _avx_class(name, entries)


def _avx_move(name, pp, load, store, w='WIG'):
    """Create a vector move class with load and store forms.
    """
    entries = []
    for size, r in ((128, 'xmm'), (256, 'ymm')):
        fields = _vex_fields(pp, '0F', w, str(size))
        entries.append(((r + '1', '%s2/m%d' % (r, size)), '%s %s /r' % (fields, load), 'rm'))
        entries.append((('m%d' % size, r + '1'), '%s %s /r' % (fields, store), 'mr'))
    return _avx_class(name, entries, "Move %s between vector registers and memory."
                      % name[4:])


vmovups = _avx_move('vmovups', None, '10', '11')
vmovaps = _avx_move('vmovaps', None, '28', '29')
vmovupd = _avx_move('vmovupd', '66', '10', '11')
vmovapd = _avx_move('vmovapd', '66', '28', '29')
vmovdqu = _avx_move('vmovdqu', 'F3', '6F', '7F')
vmovdqa = _avx_move('vmovdqa', '66', '6F', '7F')

vmovntps = _avx_class('vmovntps', [
    (('m128', 'xmm1'), 'VEX.128.0F.WIG 2B /r', 'mr'),
    (('m256', 'ymm1'), 'VEX.256.0F.WIG 2B /r', 'mr'),
])
vmovntdq = _avx_class('vmovntdq', [
    (('m128', 'xmm1'), 'VEX.128.66.0F.WIG E7 /r', 'mr'),
    (('m256', 'ymm1'), 'VEX.256.66.0F.WIG E7 /r', 'mr'),
])
vlddqu = _avx_class('vlddqu', [
    (('xmm1', 'm128'), 'VEX.128.F2.0F.WIG F0 /r', 'rm'),
    (('ymm1', 'm256'), 'VEX.256.F2.0F.WIG F0 /r', 'rm'),
])


def _avx_scalar_move(name, pp):
    size = 32 if pp == 'F3' else 64
    return _avx_class(name, [
        (('xmm1', 'm%d' % size), 'VEX.LIG.%s.0F.WIG 10 /r' % pp, 'rm'),
        (('m%d' % size, 'xmm1'), 'VEX.LIG.%s.0F.WIG 11 /r' % pp, 'mr'),
        (('xmm1', 'xmm2', 'xmm3'), 'VEX.NDS.LIG.%s.0F.WIG 10 /r' % pp, 'rvm'),
    ], "Move scalar %s-bit float." % size)

vmovss = _avx_scalar_move('vmovss', 'F3')
vmovsd = _avx_scalar_move('vmovsd', 'F2')

vmovd = _avx_class('vmovd', [
    (('xmm1', 'r/m32'), 'VEX.128.66.0F.W0 6E /r', 'rm'),
    (('r/m32', 'xmm1'), 'VEX.128.66.0F.W0 7E /r', 'mr'),
])
vmovq = _avx_class('vmovq', [
    (('xmm1', 'xmm2/m64'), 'VEX.128.F3.0F.WIG 7E /r', 'rm'),
    (('m64', 'xmm1'), 'VEX.128.66.0F.WIG D6 /r', 'mr'),
    (('xmm1', 'r64'), 'VEX.128.66.0F.W1 6E /r', 'rm'),
    (('r64', 'xmm1'), 'VEX.128.66.0F.W1 7E /r', 'mr'),
])

vmovddup = _avx('vmovddup', 'F2', '0F', '12', 'rm')
vmovshdup = _avx('vmovshdup', 'F3', '0F', '16', 'rm')
vmovsldup = _avx('vmovsldup', 'F3', '0F', '12', 'rm')
vmovhlps = _avx('vmovhlps', None, '0F', '12', sizes=(128,))
vmovlhps = _avx('vmovlhps', None, '0F', '16', sizes=(128,))


# broadcasts
vbroadcastss = _avx_class('vbroadcastss', [
    (('xmm1', 'xmm2/m32'), 'VEX.128.66.0F38.W0 18 /r', 'rm'),
    (('ymm1', 'xmm2/m32'), 'VEX.256.66.0F38.W0 18 /r', 'rm'),
], "Broadcast a single-precision float to all elements.")
vbroadcastsd = _avx_class('vbroadcastsd', [
    (('ymm1', 'xmm2/m64'), 'VEX.256.66.0F38.W0 19 /r', 'rm'),
], "Broadcast a double-precision float to all elements.")
vbroadcastf128 = _avx_class('vbroadcastf128', [
    (('ymm1', 'm128'), 'VEX.256.66.0F38.W0 1A /r', 'rm'),
])
vbroadcasti128 = _avx_class('vbroadcasti128', [
    (('ymm1', 'm128'), 'VEX.256.66.0F38.W0 5A /r', 'rm'),
])


def _pbroadcast(name, opcode, size):
    return _avx_class(name, [
        (('xmm1', 'xmm2/m%d' % size), 'VEX.128.66.0F38.W0 %s /r' % opcode, 'rm'),
        (('ymm1', 'xmm2/m%d' % size), 'VEX.256.66.0F38.W0 %s /r' % opcode, 'rm'),
    ])

vpbroadcastb = _pbroadcast('vpbroadcastb', '78', 8)
vpbroadcastw = _pbroadcast('vpbroadcastw', '79', 16)
vpbroadcastd = _pbroadcast('vpbroadcastd', '58', 32)
vpbroadcastq = _pbroadcast('vpbroadcastq', '59', 64)


# 128-bit lane insert/extract and permutes
vinsertf128 = _avx_class('vinsertf128', [
    (('ymm1', 'ymm2', 'xmm3/m128', 'imm8'), 'VEX.NDS.256.66.0F3A.W0 18 /r ib', 'rvmi'),
])
vinserti128 = _avx_class('vinserti128', [
    (('ymm1', 'ymm2', 'xmm3/m128', 'imm8'), 'VEX.NDS.256.66.0F3A.W0 38 /r ib', 'rvmi'),
])
vextractf128 = _avx_class('vextractf128', [
    (('xmm1/m128', 'ymm2', 'imm8'), 'VEX.256.66.0F3A.W0 19 /r ib', 'mri'),
])
vextracti128 = _avx_class('vextracti128', [
    (('xmm1/m128', 'ymm2', 'imm8'), 'VEX.256.66.0F3A.W0 39 /r ib', 'mri'),
])
vperm2f128 = _avx('vperm2f128', '66', '0F3A', '06', 'rvmi', w='W0', sizes=(256,))
vperm2i128 = _avx('vperm2i128', '66', '0F3A', '46', 'rvmi', w='W0', sizes=(256,))
vpermq = _avx('vpermq', '66', '0F3A', '00', 'rmi', w='W1', sizes=(256,))
vpermpd = _avx('vpermpd', '66', '0F3A', '01', 'rmi', w='W1', sizes=(256,))
vpermd = _avx('vpermd', '66', '0F38', '36', w='W0', sizes=(256,))
vpermps = _avx('vpermps', '66', '0F38', '16', w='W0', sizes=(256,))


def _avx_permil(name, var_opcode, imm_opcode):
    entries = []
    for size, r in ((128, 'xmm'), (256, 'ymm')):
        entries.append(((r + '1', r + '2', '%s3/m%d' % (r, size)),
                        'VEX.NDS.%d.66.0F38.W0 %s /r' % (size, var_opcode), 'rvm'))
        entries.append(((r + '1', '%s2/m%d' % (r, size), 'imm8'),
                        'VEX.%d.66.0F3A.W0 %s /r ib' % (size, imm_opcode), 'rmi'))
    return _avx_class(name, entries)

vpermilps = _avx_permil('vpermilps', '0C', '04')
vpermilpd = _avx_permil('vpermilpd', '0D', '05')


# element insert/extract
def _avx_insert(name, opcode, src, w, mp='0F3A'):
    return _avx_class(name, [
        (('xmm1', 'xmm2', src, 'imm8'), 'VEX.NDS.128.66.%s.%s %s /r ib' % (mp, w, opcode), 'rvmi'),
    ])


def _avx_extract(name, opcode, dst, w):
    return _avx_class(name, [
        ((dst, 'xmm2', 'imm8'), 'VEX.128.66.0F3A.%s %s /r ib' % (w, opcode), 'mri'),
    ])

vpinsrb = _avx_insert('vpinsrb', '20', 'r32/m8', 'W0')
vpinsrw = _avx_insert('vpinsrw', 'C4', 'r32/m16', 'W0', mp='0F')
vpinsrd = _avx_insert('vpinsrd', '22', 'r/m32', 'W0')
vpinsrq = _avx_insert('vpinsrq', '22', 'r/m64', 'W1')
vinsertps = _avx_insert('vinsertps', '21', 'xmm3/m32', 'WIG')
vpextrb = _avx_extract('vpextrb', '14', 'r32/m8', 'W0')
vpextrd = _avx_extract('vpextrd', '16', 'r/m32', 'W0')
vpextrq = _avx_extract('vpextrq', '16', 'r/m64', 'W1')
vextractps = _avx_extract('vextractps', '17', 'r/m32', 'WIG')
vpextrw = _avx_class('vpextrw', [
    (('r32', 'xmm2', 'imm8'), 'VEX.128.66.0F.W0 C5 /r ib', 'rmi'),
])


# masks, tests and moves to general-purpose registers
def _avx_to_gp(name, pp, mp, opcode):
    return _avx_class(name, [
        (('r32', 'xmm2'), '%s %s /r' % (_vex_fields(pp, mp, 'WIG', '128'), opcode), 'rm'),
        (('r32', 'ymm2'), '%s %s /r' % (_vex_fields(pp, mp, 'WIG', '256'), opcode), 'rm'),
    ])

vmovmskps = _avx_to_gp('vmovmskps', None, '0F', '50')
vmovmskpd = _avx_to_gp('vmovmskpd', '66', '0F', '50')
vpmovmskb = _avx_to_gp('vpmovmskb', '66', '0F', 'D7')
vptest = _avx('vptest', '66', '0F38', '17', 'rm')
vtestps = _avx('vtestps', '66', '0F38', '0E', 'rm', w='W0')


def _avx_maskmov(name, load, store, w):
    entries = []
    for size, r in ((128, 'xmm'), (256, 'ymm')):
        entries.append(((r + '1', r + '2', 'm%d' % size),
                        'VEX.NDS.%d.66.0F38.%s %s /r' % (size, w, load), 'rvm'))
        entries.append((('m%d' % size, r + '1', r + '2'),
                        'VEX.NDS.%d.66.0F38.%s %s /r' % (size, w, store), 'mvr'))
    return _avx_class(name, entries)

vmaskmovps = _avx_maskmov('vmaskmovps', '2C', '2E', 'W0')
vmaskmovpd = _avx_maskmov('vmaskmovpd', '2D', '2F', 'W0')
vpmaskmovd = _avx_maskmov('vpmaskmovd', '8C', '8E', 'W0')
vpmaskmovq = _avx_maskmov('vpmaskmovq', '8C', '8E', 'W1')


# zero/sign extension of packed integers: ymm form reads half the bytes
def _pmovx(name, opcode, ratio):
    return _avx_class(name, [
        (('xmm1', 'xmm2/m%d' % (128 // ratio)), 'VEX.128.66.0F38.WIG %s /r' % opcode, 'rm'),
        (('ymm1', 'xmm2/m%d' % (256 // ratio)), 'VEX.256.66.0F38.WIG %s /r' % opcode, 'rm'),
    ])

vpmovsxbw = _pmovx('vpmovsxbw', '20', 2)
vpmovsxbd = _pmovx('vpmovsxbd', '21', 4)
vpmovsxbq = _pmovx('vpmovsxbq', '22', 8)
vpmovsxwd = _pmovx('vpmovsxwd', '23', 2)
vpmovsxwq = _pmovx('vpmovsxwq', '24', 4)
vpmovsxdq = _pmovx('vpmovsxdq', '25', 2)
vpmovzxbw = _pmovx('vpmovzxbw', '30', 2)
vpmovzxbd = _pmovx('vpmovzxbd', '31', 4)
vpmovzxbq = _pmovx('vpmovzxbq', '32', 8)
vpmovzxwd = _pmovx('vpmovzxwd', '33', 2)
vpmovzxwq = _pmovx('vpmovzxwq', '34', 4)
vpmovzxdq = _pmovx('vpmovzxdq', '35', 2)


# conversions that change the element width
vcvtdq2ps = _avx('vcvtdq2ps', None, '0F', '5B', 'rm')
vcvtps2dq = _avx('vcvtps2dq', '66', '0F', '5B', 'rm')
vcvttps2dq = _avx('vcvttps2dq', 'F3', '0F', '5B', 'rm')
vcvtps2pd = _avx_class('vcvtps2pd', [
    (('xmm1', 'xmm2/m64'), 'VEX.128.0F.WIG 5A /r', 'rm'),
    (('ymm1', 'xmm2/m128'), 'VEX.256.0F.WIG 5A /r', 'rm'),
])
vcvtdq2pd = _avx_class('vcvtdq2pd', [
    (('xmm1', 'xmm2/m64'), 'VEX.128.F3.0F.WIG E6 /r', 'rm'),
    (('ymm1', 'xmm2/m128'), 'VEX.256.F3.0F.WIG E6 /r', 'rm'),
])
vcvtpd2ps = _avx_class('vcvtpd2ps', [
    (('xmm1', 'xmm2/m128'), 'VEX.128.66.0F.WIG 5A /r', 'rm'),
    (('xmm1', 'ymm2/m256'), 'VEX.256.66.0F.WIG 5A /r', 'rm'),
])
vcvttpd2dq = _avx_class('vcvttpd2dq', [
    (('xmm1', 'xmm2/m128'), 'VEX.128.66.0F.WIG E6 /r', 'rm'),
    (('xmm1', 'ymm2/m256'), 'VEX.256.66.0F.WIG E6 /r', 'rm'),
])
vcvtph2ps = _avx_class('vcvtph2ps', [
    (('xmm1', 'xmm2/m64'), 'VEX.128.66.0F38.W0 13 /r', 'rm'),
    (('ymm1', 'xmm2/m128'), 'VEX.256.66.0F38.W0 13 /r', 'rm'),
])


def _avx_int_convert(name, pp, opcode, size):
    return _avx_class(name, [
        (('xmm1', 'xmm2', 'r/m32'), 'VEX.NDS.LIG.%s.0F.W0 %s /r' % (pp, opcode), 'rvm'),
        (('xmm1', 'xmm2', 'r/m64'), 'VEX.NDS.LIG.%s.0F.W1 %s /r' % (pp, opcode), 'rvm'),
    ])

vcvtsi2ss = _avx_int_convert('vcvtsi2ss', 'F3', '2A', 32)
vcvtsi2sd = _avx_int_convert('vcvtsi2sd', 'F2', '2A', 64)


def _avx_to_int(name, pp, opcode, size):
    return _avx_class(name, [
        (('r32', 'xmm1/m%d' % size), 'VEX.LIG.%s.0F.W0 %s /r' % (pp, opcode), 'rm'),
        (('r64', 'xmm1/m%d' % size), 'VEX.LIG.%s.0F.W1 %s /r' % (pp, opcode), 'rm'),
    ])

vcvttss2si = _avx_to_int('vcvttss2si', 'F3', '2C', 32)
vcvttsd2si = _avx_to_int('vcvttsd2si', 'F2', '2C', 64)
vcvtss2si = _avx_to_int('vcvtss2si', 'F3', '2D', 32)
vcvtsd2si = _avx_to_int('vcvtsd2si', 'F2', '2D', 64)

vcvtss2sd = _avx_scalar('vcvtss2sd', 'F3', '0F', '5A', 32)
vcvtsd2ss = _avx_scalar('vcvtsd2ss', 'F2', '0F', '5A', 64)
vucomiss = _avx_scalar('vucomiss', None, '0F', '2E', 32, 'rm')
vucomisd = _avx_scalar('vucomisd', '66', '0F', '2E', 64, 'rm')
vcomiss = _avx_scalar('vcomiss', None, '0F', '2F', 32, 'rm')
vcomisd = _avx_scalar('vcomisd', '66', '0F', '2F', 64, 'rm')


# packed shifts: by immediate (vmi) and by the count in an xmm register
def _avx_shift(name, imm_opcode, ext, count_opcode):
    entries = []
    for size, r in ((128, 'xmm'), (256, 'ymm')):
        entries.append(((r + '1', '%s2' % r, 'imm8'),
                        'VEX.NDD.%d.66.0F.WIG %s /%d ib' % (size, imm_opcode, ext), 'vmi'))
        if count_opcode is not None:
            entries.append(((r + '1', r + '2', 'xmm3/m128'),
                            'VEX.NDS.%d.66.0F.WIG %s /r' % (size, count_opcode), 'rvm'))
    return _avx_class(name, entries)

vpsrlw = _avx_shift('vpsrlw', '71', 2, 'D1')
vpsraw = _avx_shift('vpsraw', '71', 4, 'E1')
vpsllw = _avx_shift('vpsllw', '71', 6, 'F1')
vpsrld = _avx_shift('vpsrld', '72', 2, 'D2')
vpsrad = _avx_shift('vpsrad', '72', 4, 'E2')
vpslld = _avx_shift('vpslld', '72', 6, 'F2')
vpsrlq = _avx_shift('vpsrlq', '73', 2, 'D3')
vpsllq = _avx_shift('vpsllq', '73', 6, 'F3')
vpsrldq = _avx_shift('vpsrldq', '73', 3, None)
vpslldq = _avx_shift('vpslldq', '73', 7, None)


# (name, pp, map, opcode, form, W) for packed AVX forms
_avx_ops = [
    ('vaddps', None, '0F', '58', 'rvm', 'WIG'), ('vaddpd', '66', '0F', '58', 'rvm', 'WIG'),
    ('vmulps', None, '0F', '59', 'rvm', 'WIG'), ('vmulpd', '66', '0F', '59', 'rvm', 'WIG'),
    ('vsubps', None, '0F', '5C', 'rvm', 'WIG'), ('vsubpd', '66', '0F', '5C', 'rvm', 'WIG'),
    ('vdivps', None, '0F', '5E', 'rvm', 'WIG'), ('vdivpd', '66', '0F', '5E', 'rvm', 'WIG'),
    ('vminps', None, '0F', '5D', 'rvm', 'WIG'), ('vminpd', '66', '0F', '5D', 'rvm', 'WIG'),
    ('vmaxps', None, '0F', '5F', 'rvm', 'WIG'), ('vmaxpd', '66', '0F', '5F', 'rvm', 'WIG'),
    ('vandps', None, '0F', '54', 'rvm', 'WIG'), ('vandpd', '66', '0F', '54', 'rvm', 'WIG'),
    ('vandnps', None, '0F', '55', 'rvm', 'WIG'), ('vandnpd', '66', '0F', '55', 'rvm', 'WIG'),
    ('vorps', None, '0F', '56', 'rvm', 'WIG'), ('vorpd', '66', '0F', '56', 'rvm', 'WIG'),
    ('vxorps', None, '0F', '57', 'rvm', 'WIG'), ('vxorpd', '66', '0F', '57', 'rvm', 'WIG'),
    ('vunpcklps', None, '0F', '14', 'rvm', 'WIG'), ('vunpckhps', None, '0F', '15', 'rvm', 'WIG'),
    ('vunpcklpd', '66', '0F', '14', 'rvm', 'WIG'), ('vunpckhpd', '66', '0F', '15', 'rvm', 'WIG'),
    ('vaddsubps', 'F2', '0F', 'D0', 'rvm', 'WIG'), ('vaddsubpd', '66', '0F', 'D0', 'rvm', 'WIG'),
    ('vhaddps', 'F2', '0F', '7C', 'rvm', 'WIG'), ('vhaddpd', '66', '0F', '7C', 'rvm', 'WIG'),
    ('vhsubps', 'F2', '0F', '7D', 'rvm', 'WIG'), ('vhsubpd', '66', '0F', '7D', 'rvm', 'WIG'),
    ('vsqrtps', None, '0F', '51', 'rm', 'WIG'), ('vsqrtpd', '66', '0F', '51', 'rm', 'WIG'),
    ('vrsqrtps', None, '0F', '52', 'rm', 'WIG'), ('vrcpps', None, '0F', '53', 'rm', 'WIG'),
    ('vshufps', None, '0F', 'C6', 'rvmi', 'WIG'), ('vshufpd', '66', '0F', 'C6', 'rvmi', 'WIG'),
    ('vcmpps', None, '0F', 'C2', 'rvmi', 'WIG'), ('vcmppd', '66', '0F', 'C2', 'rvmi', 'WIG'),
    ('vblendps', '66', '0F3A', '0C', 'rvmi', 'WIG'), ('vblendpd', '66', '0F3A', '0D', 'rvmi', 'WIG'),
    ('vdpps', '66', '0F3A', '40', 'rvmi', 'WIG'),
    ('vroundps', '66', '0F3A', '08', 'rmi', 'WIG'), ('vroundpd', '66', '0F3A', '09', 'rmi', 'WIG'),
    ('vblendvps', '66', '0F3A', '4A', 'rvmr', 'W0'), ('vblendvpd', '66', '0F3A', '4B', 'rvmr', 'W0'),
    ('vpblendvb', '66', '0F3A', '4C', 'rvmr', 'W0'),

    ('vpaddb', '66', '0F', 'FC', 'rvm', 'WIG'), ('vpaddw', '66', '0F', 'FD', 'rvm', 'WIG'),
    ('vpaddd', '66', '0F', 'FE', 'rvm', 'WIG'), ('vpaddq', '66', '0F', 'D4', 'rvm', 'WIG'),
    ('vpaddsb', '66', '0F', 'EC', 'rvm', 'WIG'), ('vpaddsw', '66', '0F', 'ED', 'rvm', 'WIG'),
    ('vpaddusb', '66', '0F', 'DC', 'rvm', 'WIG'), ('vpaddusw', '66', '0F', 'DD', 'rvm', 'WIG'),
    ('vpsubb', '66', '0F', 'F8', 'rvm', 'WIG'), ('vpsubw', '66', '0F', 'F9', 'rvm', 'WIG'),
    ('vpsubd', '66', '0F', 'FA', 'rvm', 'WIG'), ('vpsubq', '66', '0F', 'FB', 'rvm', 'WIG'),
    ('vpsubsb', '66', '0F', 'E8', 'rvm', 'WIG'), ('vpsubsw', '66', '0F', 'E9', 'rvm', 'WIG'),
    ('vpsubusb', '66', '0F', 'D8', 'rvm', 'WIG'), ('vpsubusw', '66', '0F', 'D9', 'rvm', 'WIG'),
    ('vpmullw', '66', '0F', 'D5', 'rvm', 'WIG'), ('vpmulhw', '66', '0F', 'E5', 'rvm', 'WIG'),
    ('vpmulhuw', '66', '0F', 'E4', 'rvm', 'WIG'), ('vpmulld', '66', '0F38', '40', 'rvm', 'WIG'),
    ('vpmuludq', '66', '0F', 'F4', 'rvm', 'WIG'), ('vpmuldq', '66', '0F38', '28', 'rvm', 'WIG'),
    ('vpmaddwd', '66', '0F', 'F5', 'rvm', 'WIG'), ('vpmaddubsw', '66', '0F38', '04', 'rvm', 'WIG'),
    ('vpand', '66', '0F', 'DB', 'rvm', 'WIG'), ('vpandn', '66', '0F', 'DF', 'rvm', 'WIG'),
    ('vpor', '66', '0F', 'EB', 'rvm', 'WIG'), ('vpxor', '66', '0F', 'EF', 'rvm', 'WIG'),
    ('vpcmpeqb', '66', '0F', '74', 'rvm', 'WIG'), ('vpcmpeqw', '66', '0F', '75', 'rvm', 'WIG'),
    ('vpcmpeqd', '66', '0F', '76', 'rvm', 'WIG'), ('vpcmpeqq', '66', '0F38', '29', 'rvm', 'WIG'),
    ('vpcmpgtb', '66', '0F', '64', 'rvm', 'WIG'), ('vpcmpgtw', '66', '0F', '65', 'rvm', 'WIG'),
    ('vpcmpgtd', '66', '0F', '66', 'rvm', 'WIG'), ('vpcmpgtq', '66', '0F38', '37', 'rvm', 'WIG'),
    ('vpmaxsb', '66', '0F38', '3C', 'rvm', 'WIG'), ('vpmaxsw', '66', '0F', 'EE', 'rvm', 'WIG'),
    ('vpmaxsd', '66', '0F38', '3D', 'rvm', 'WIG'), ('vpmaxub', '66', '0F', 'DE', 'rvm', 'WIG'),
    ('vpmaxuw', '66', '0F38', '3E', 'rvm', 'WIG'), ('vpmaxud', '66', '0F38', '3F', 'rvm', 'WIG'),
    ('vpminsb', '66', '0F38', '38', 'rvm', 'WIG'), ('vpminsw', '66', '0F', 'EA', 'rvm', 'WIG'),
    ('vpminsd', '66', '0F38', '39', 'rvm', 'WIG'), ('vpminub', '66', '0F', 'DA', 'rvm', 'WIG'),
    ('vpminuw', '66', '0F38', '3A', 'rvm', 'WIG'), ('vpminud', '66', '0F38', '3B', 'rvm', 'WIG'),
    ('vpavgb', '66', '0F', 'E0', 'rvm', 'WIG'), ('vpavgw', '66', '0F', 'E3', 'rvm', 'WIG'),
    ('vpsadbw', '66', '0F', 'F6', 'rvm', 'WIG'),
    ('vpshufb', '66', '0F38', '00', 'rvm', 'WIG'),
    ('vpunpcklbw', '66', '0F', '60', 'rvm', 'WIG'), ('vpunpckhbw', '66', '0F', '68', 'rvm', 'WIG'),
    ('vpunpcklwd', '66', '0F', '61', 'rvm', 'WIG'), ('vpunpckhwd', '66', '0F', '69', 'rvm', 'WIG'),
    ('vpunpckldq', '66', '0F', '62', 'rvm', 'WIG'), ('vpunpckhdq', '66', '0F', '6A', 'rvm', 'WIG'),
    ('vpunpcklqdq', '66', '0F', '6C', 'rvm', 'WIG'), ('vpunpckhqdq', '66', '0F', '6D', 'rvm', 'WIG'),
    ('vpacksswb', '66', '0F', '63', 'rvm', 'WIG'), ('vpackssdw', '66', '0F', '6B', 'rvm', 'WIG'),
    ('vpackuswb', '66', '0F', '67', 'rvm', 'WIG'), ('vpackusdw', '66', '0F38', '2B', 'rvm', 'WIG'),
    ('vpsllvd', '66', '0F38', '47', 'rvm', 'W0'), ('vpsllvq', '66', '0F38', '47', 'rvm', 'W1'),
    ('vpsrlvd', '66', '0F38', '45', 'rvm', 'W0'), ('vpsrlvq', '66', '0F38', '45', 'rvm', 'W1'),
    ('vpsravd', '66', '0F38', '46', 'rvm', 'W0'),
    ('vpabsb', '66', '0F38', '1C', 'rm', 'WIG'), ('vpabsw', '66', '0F38', '1D', 'rm', 'WIG'),
    ('vpabsd', '66', '0F38', '1E', 'rm', 'WIG'),
    ('vpshufd', '66', '0F', '70', 'rmi', 'WIG'), ('vpshufhw', 'F3', '0F', '70', 'rmi', 'WIG'),
    ('vpshuflw', 'F2', '0F', '70', 'rmi', 'WIG'),
    ('vpalignr', '66', '0F3A', '0F', 'rvmi', 'WIG'), ('vpblendw', '66', '0F3A', '0E', 'rvmi', 'WIG'),
    ('vpblendd', '66', '0F3A', '02', 'rvmi', 'W0'),
]

# (name, pp, opcode, size, form) for scalar AVX forms
_avx_scalar_ops = [
    ('vaddss', 'F3', '58', 32, 'rvm'), ('vaddsd', 'F2', '58', 64, 'rvm'),
    ('vmulss', 'F3', '59', 32, 'rvm'), ('vmulsd', 'F2', '59', 64, 'rvm'),
    ('vsubss', 'F3', '5C', 32, 'rvm'), ('vsubsd', 'F2', '5C', 64, 'rvm'),
    ('vdivss', 'F3', '5E', 32, 'rvm'), ('vdivsd', 'F2', '5E', 64, 'rvm'),
    ('vminss', 'F3', '5D', 32, 'rvm'), ('vminsd', 'F2', '5D', 64, 'rvm'),
    ('vmaxss', 'F3', '5F', 32, 'rvm'), ('vmaxsd', 'F2', '5F', 64, 'rvm'),
    ('vsqrtss', 'F3', '51', 32, 'rvm'), ('vsqrtsd', 'F2', '51', 64, 'rvm'),
    ('vcmpss', 'F3', 'C2', 32, 'rvmi'), ('vcmpsd', 'F2', 'C2', 64, 'rvmi'),
]


def _fma(name, opcode, packed):
    """Create an FMA3 instruction class. The 132/213/231 suffix gives the
    operand order of the multiply-add; the destination is also a source.
    """
    double = name.endswith('d')
    w = 'W1' if double else 'W0'
    if packed:
        entries = []
        for size, r in ((128, 'xmm'), (256, 'ymm')):
            entries.append(((r + '1', r + '2', '%s3/m%d' % (r, size)),
                            'VEX.DDS.%d.66.0F38.%s %s /r' % (size, w, opcode), 'fma'))
    else:
        size = 64 if double else 32
        entries = [(('xmm1', 'xmm2', 'xmm3/m%d' % size),
                    'VEX.DDS.LIG.66.0F38.%s %s /r' % (w, opcode), 'fma')]
    return _avx_class(name, entries)


# FMA3 opcode bases for the 132 ordering; 213 adds 0x10 and 231 adds 0x20
_fma_ops = [
    ('vfmaddsub', 0x96, True), ('vfmsubadd', 0x97, True),
    ('vfmadd', 0x98, True), ('vfmadd', 0x99, False),
    ('vfmsub', 0x9a, True), ('vfmsub', 0x9b, False),
    ('vfnmadd', 0x9c, True), ('vfnmadd', 0x9d, False),
    ('vfnmsub', 0x9e, True), ('vfnmsub', 0x9f, False),
]



#   Table construction
#----------------------------------------

table = {}

def _register(cls):
    table[cls.name] = cls
    globals()[cls.__name__] = cls
    return cls

for _cc, _code in conditions:
    _register(_cmovcc(_cc, _code))
    _register(_setcc(_cc, _code))

for _name, _pfx, _op, _src in _sse_ops:
    _register(_sse(_name, _sse_opcode(_pfx, _op), _src))

for _name, _pfx, _op, _src in _sse_imm_ops:
    _register(_sse(_name, _sse_opcode(_pfx, _op), _src, imm=True))

for _name, _op, _ext in _sse_shift_ops:
    _register(_sse(_name, _op, ext=_ext))

for _name, _pp, _mp, _op, _form, _w in _avx_ops:
    _register(_avx(_name, _pp, _mp, _op, _form, w=_w))

for _name, _pp, _op, _size, _form in _avx_scalar_ops:
    _register(_avx_scalar(_name, _pp, '0F', _op, _size, _form))

for _base, _op, _packed in _fma_ops:
    _types = ('ps', 'pd') if _packed else ('ss', 'sd')
    for _i, _order in enumerate(('132', '213', '231')):
        for _t in _types:
            _register(_fma(_base + _order + _t, '%02X' % (_op + 0x10 * _i), _packed))

for _obj in list(globals().values()):
    if isinstance(_obj, type) and issubclass(_obj, Mnemonic) and _obj is not Mnemonic:
        table[_obj.name] = _obj



def lookup(name):
    """Return the Mnemonic class encoding *name*, or None.
    """
    return table.get(name.lower())
