# -'- coding: utf-8 -'-

from pytest import raises

from c2plan9.asm.register import registers, rax, rbx, rcx, rdi, rip
from c2plan9.asm.pointer import Pointer
from c2plan9.asm.immediate import Immediate
from c2plan9.asm.parser import (parse_asm, parse_instruction, parse_operand,
                                parse_number, strip_comment)
from c2plan9.source import Label, Directive, Instruction
from c2plan9.errors import ParseError, UnsupportedInstructionError


def test_operands():
    assert parse_operand('rax') is rax
    assert parse_operand('YMM3') is registers['ymm3']
    assert parse_operand('0x20') == Immediate(0x20)
    assert parse_operand('-8') == Immediate(-8)
    assert parse_operand('010') == Immediate(8)
    assert parse_operand('.LBB0_3') == Immediate(symbol='.LBB0_3')
    assert parse_operand('memcpy@PLT') == Immediate(symbol='memcpy@PLT')


def test_pointers():
    assert parse_operand('[rdi]') == Pointer(rdi)
    assert parse_operand('ymmword ptr [rdi + 4*rcx + 32]') == Pointer(rdi, rcx, 4, 32,
                                                                       bits=256)
    assert parse_operand('qword ptr [rbx + rcx*8 - 0x10]') == Pointer(rbx, rcx, 8, -16,
                                                                      bits=64)
    assert parse_operand('[rax + rbx]') == Pointer(rax, rbx, 1)
    assert parse_operand('xmmword ptr [rip + .LCPI0_0]') == Pointer(rip, bits=128,
                                                                    symbol='.LCPI0_0')
    # gcc spelling of rip-relative operands
    assert parse_operand('QWORD PTR .LC3+8[rip]') == Pointer(rip, disp=8, bits=64,
                                                             symbol='.LC3')
    assert parse_operand('.LC0[rip]') == Pointer(rip, symbol='.LC0')


def test_operand_errors():
    bad = [
        'OFFSET FLAT:.LC0',
        'qword ptr fs:[0]',
        '[eax]',
        '[xmm0]',
        '[rax + 3*rbx]',
        '[rax + rbx + rcx]',
        '[rax - rbx]',
        '[.LC0]',
        '[rip + 4*rax]',
        'dword ptr eax',
        'rip',
        '%rax',
    ]
    for op in bad:
        with raises(ParseError):
            parse_operand(op, lineno=7)
    try:
        parse_operand('[eax]', lineno=7)
    except ParseError as err:
        assert err.lineno == 7
        assert err.construct == 'eax'


def test_instruction():
    inst = parse_instruction('vfmadd213ps ymm1, ymm0, ymmword ptr [rdx]', 3)
    assert isinstance(inst, Instruction)
    assert inst.mnemonic == 'vfmadd213ps'
    assert inst.operands == (registers['ymm1'], registers['ymm0'],
                             Pointer(registers['rdx'], bits=256))
    assert inst.lineno == 3
    assert str(inst) == 'vfmadd213ps ymm1, ymm0, ymmword ptr [rdx]'

    inst = parse_instruction('REP   STOSQ')
    assert inst.prefix == 'rep'
    assert inst.mnemonic == 'stosq'
    assert inst.operands == ()
    assert str(inst) == 'REP STOSQ'

    inst = parse_instruction('jne .LBB0_2')
    assert inst.is_jump
    assert inst.target == '.LBB0_2'

    assert parse_instruction('ret').operands == ()
    with raises(ParseError):
        parse_instruction('add rax,, 1')
    with raises(ParseError):
        parse_instruction('1nop')


def test_numbers():
    assert parse_number('0x1F') == 31
    assert parse_number('-0x10') == -16
    assert parse_number('017') == 15
    assert parse_number('0') == 0
    assert parse_number('+12') == 12


def test_comments():
    assert strip_comment('ret # done') == ('ret ', 'done')
    assert strip_comment('.asciz "a#b" # str') == ('.asciz "a#b" ', 'str')
    assert strip_comment('nop') == ('nop', None)


asm = """
	.text
	.intel_syntax noprefix
	.section	.rodata.cst32,"aM",@progbits,32
	.p2align	5
.LCPI0_0:
	.long	0x3f800000              # float 1
	.text
	.globl	f
f:  push rbp   # prologue
	mov	rbp, rsp
.LBB0_1: .Ltmp0:
	vmovaps	ymm0, ymmword ptr [rip + .LCPI0_0]
	.pushsection .rodata
	.popsection
	pop	rbp
	ret
"""


def test_parse_asm():
    recs = parse_asm(asm)
    labels = [r for r in recs if isinstance(r, Label)]
    assert [l.name for l in labels] == ['.LCPI0_0', 'f', '.LBB0_1', '.Ltmp0']
    assert labels[0].section == '.rodata.cst32'
    assert labels[1].section == '.text'
    assert labels[2].lineno == labels[3].lineno

    insts = [r for r in recs if isinstance(r, Instruction)]
    assert [i.mnemonic for i in insts] == ['push', 'mov', 'vmovaps', 'pop', 'ret']
    assert insts[0].comment == 'prologue'
    assert insts[0].label == 'f'
    assert insts[2].label == '.Ltmp0'
    assert all(i.section == '.text' for i in insts)

    dirs = [r for r in recs if isinstance(r, Directive)]
    push = [d for d in dirs if d.name == '.pushsection'][0]
    pop = [d for d in dirs if d.name == '.popsection'][0]
    assert push.section == '.rodata'
    assert pop.section == '.text'
    sect = [d for d in dirs if d.name == '.section'][0]
    assert sect.argv == ['.rodata.cst32', '"aM"', '@progbits', '32']


def test_parse_errors():
    with raises(ParseError) as exc:
        parse_asm('f:\n\tpush rbp\n\tmov rax, OFFSET .LC0\n')
    assert exc.value.lineno == 3
    with raises(ParseError):
        parse_asm('\t.popsection\n')


def test_macho_sections():
    recs = parse_asm('\t.section\t__TEXT,__literal16,16byte_literals\nLCPI0_0:\n'
                     '\t.quad 1\n\t.section __TEXT,__text,regular,pure_instructions\n'
                     '_f:\n')
    labels = [r for r in recs if isinstance(r, Label)]
    assert labels[0].section == '__TEXT,__literal16'
    assert labels[1].section == '__TEXT,__text'


def test_directives_in_text():
    with raises(ParseError) as exc:
        parse_asm('\t.text\nf:\n\t.bogus_directive 1\n')
    assert exc.value.lineno == 3
    assert exc.value.construct == '.bogus_directive'

    # only the text section is checked
    parse_asm('\t.section\t.note.GNU-stack,"",@progbits\n\t.bogus_directive 1\n')

    # boilerplate and data directives are recorded
    recs = parse_asm('\t.text\n\t.cfi_startproc\nf:\n\t.byte\t0x0f, 0x0b\n\t.p2align\t4, 0x90\n')
    dirs = [r.name for r in recs if isinstance(r, Directive)]
    assert dirs == ['.text', '.cfi_startproc', '.byte', '.p2align']


def test_vector_index():
    with raises(UnsupportedInstructionError):
        parse_operand('dword ptr [rdi + 4*ymm1]', lineno=5)

    # the instruction still parses; only its function can fail
    inst = parse_instruction('vgatherdps ymm0, dword ptr [rdi + 4*ymm1], ymm2', 5)
    assert isinstance(inst.problem, UnsupportedInstructionError)
    assert inst.problem.lineno == 5
    assert inst.operands == (registers['ymm0'], registers['ymm2'])
    assert parse_instruction('mov rax, rdi').problem is None
