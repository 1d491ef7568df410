# -'- coding: utf-8 -'-

from pytest import raises

from c2plan9 import translate, Options, TranslationFailed
from c2plan9.errors import (ParseError, StructuralError, UnsupportedCallError,
                            UnsupportedInstructionError, MissingConstantDataError)


fma_asm = """
	.text
	.intel_syntax noprefix
	.file	"fma.c"
	.globl	fma                             # -- Begin function fma
	.p2align	4, 0x90
	.type	fma,@function
fma:                                    # @fma
# %bb.0:
	push	rbp
	mov	rbp, rsp
	vmovups	ymm0, ymmword ptr [rdi]
	vmovups	ymm1, ymmword ptr [rsi]
	vfmadd213ps	ymm1, ymm0, ymmword ptr [rdx] # ymm1 = (ymm0 * ymm1) + mem
	vmovups	ymmword ptr [rcx], ymm1
	pop	rbp
	vzeroupper
	ret
.Lfunc_end0:
	.size	fma, .Lfunc_end0-fma
                                        # -- End function
"""

fma_go = "func _fma(a, b, c, result unsafe.Pointer)"

fma_plan9 = """\
// Code generated by c2plan9. DO NOT EDIT.
//+build !noasm !appengine

#include "textflag.h"

TEXT ·_fma(SB), $0-32
	MOVQ a+0(FP), DI
	MOVQ b+8(FP), SI
	MOVQ c+16(FP), DX
	MOVQ result+24(FP), CX
	LONG $0x0710fcc5
	LONG $0x0e10fcc5
	LONG $0xa87de2c4; BYTE $0x0a
	LONG $0x0911fcc5
	VZEROUPPER
	RET
"""


def test_fma():
    result = translate(fma_asm, prototypes=fma_go, compact=True, strip_comments=True)
    assert result.text == fma_plan9
    assert str(result) == fma_plan9
    info = result.functions[0]
    assert info.name == 'fma'
    assert info.symbol == '_fma'
    assert info.arg_count == 4
    assert info.arg_size == 32
    assert info.frame_size == 0


def test_fma_discovered():
    result = translate(fma_asm)
    lines = result.text.split('\n')
    assert 'TEXT ·_fma(SB), $0-32' in lines
    assert '\tMOVQ arg4+24(FP), CX' in lines
    assert '\tBYTE $0xc5; BYTE $0xfc; BYTE $0x10; BYTE $0x07 // vmovups ymm0, ymmword ptr [rdi]' \
        in lines
    assert result.functions[0].signature.discovered


def test_deterministic():
    a = translate(fma_asm + scale_asm, Options(prototypes=fma_go))
    b = translate(fma_asm + scale_asm, Options(prototypes=fma_go, jobs=4))
    assert a.text == b.text
    assert [f.symbol for f in b.functions] == ['_fma', '_scale']


scale_asm = """
	.section	.rodata.cst4,"aM",@progbits,4
	.p2align	2
.LCPI1_0:
	.long	0x40000000                      # float 2
	.text
	.globl	scale
scale:
	push	rbp
	mov	rbp, rsp
	vbroadcastss	ymm0, dword ptr [rip + .LCPI1_0]
	vmulps	ymm0, ymm0, ymmword ptr [rdi]
	vmovups	ymmword ptr [rsi], ymm0
	pop	rbp
	vzeroupper
	ret
.Lfunc_end1:
	.size	scale, .Lfunc_end1-scale
"""


def test_constant_pool():
    result = translate(scale_asm, compact=True)
    lines = result.text.split('\n')
    assert 'DATA LCDATA<>+0x000(SB)/4, $0x40000000' in lines
    assert 'GLOBL LCDATA<>(SB), RODATA|NOPTR, $4' in lines
    assert lines.index('GLOBL LCDATA<>(SB), RODATA|NOPTR, $4') < lines.index(
        'TEXT ·_scale(SB), $0-16')
    text = lines.index('TEXT ·_scale(SB), $0-16')
    assert lines[text + 3] == '\tLEAQ LCDATA<>(SB), BX'
    # vbroadcastss ymm0, dword ptr [rbx]
    assert lines[text + 4].startswith('\tLONG $0x187de2c4; BYTE $0x03')
    assert result.pool.offset('.LCPI1_0') == 0


frame_asm = """
	.text
g:
	push	rbp
	mov	rbp, rsp
	sub	rsp, 16
	mov	qword ptr [rbp - 8], rdi
	mov	rax, qword ptr [rbp - 8]
	add	rsp, 16
	pop	rbp
	ret
"""


def test_frame():
    result = translate(frame_asm, prototypes='func _g(p int) (ret int)', compact=True,
                       strip_comments=True)
    lines = result.text.split('\n')
    start = lines.index('TEXT ·_g(SB), $48-16')
    assert lines[start + 1:start + 7] == [
        '\tMOVQ p+0(FP), DI',
        '\tMOVQ SP, BP',
        '\tADDQ $32, BP',
        '\tANDQ $-16, BP',
        '\tMOVQ SP, 0(BP)',
        '\tMOVQ BP, SP',
    ]
    assert lines[-4:] == ['\tMOVQ 0(BP), SP', '\tMOVQ AX, ret+8(FP)', '\tRET', '']


def framed(body, name='f'):
    return ("\t.text\n%s:\n\tpush rbp\n\tmov rbp, rsp\n%s\n\tmov rsp, rbp\n\tpop rbp\n\tret\n"
            % (name, body))


def test_frame_holds_all_locals():
    # stack grown after the body has started
    asm = framed("\tmov rax, rdi\n\tsub rsp, 4096\n\tmov qword ptr [rsp], rax")
    info = translate(asm).functions[0]
    assert info.frame_size == 4128

    # gcc stack-clash probing grows the stack in steps
    info = translate(framed("\tsub rsp, 4096\n\tor qword ptr [rsp], 0\n\tsub rsp, 512\n"
                            "\tmov qword ptr [rsp], rdi")).functions[0]
    assert info.frame_size >= 4608 + 16
    assert info.frame_size % 16 == 0

    with raises(TranslationFailed) as exc:
        translate(framed("\tsub rsp, rdi\n\tmov qword ptr [rsp], rdi"))
    err = exc.value.errors[0]
    assert isinstance(err, UnsupportedInstructionError)
    assert err.construct == 'sub rsp, rdi'


def test_data_in_function():
    lines = translate(framed("\t.byte\t0x0f, 0x0b\n\tmov rax, rdi"),
                      strip_comments=True).text.split('\n')
    start = lines.index('TEXT ·_f(SB), $0-8')
    assert lines[start + 2] == '\tBYTE $0x0f; BYTE $0x0b'

    text = translate(framed("\t.byte\t0x0f, 0x0b")).text
    assert '\tBYTE $0x0f; BYTE $0x0b' + ' ' * 18 + ' // .byte 0x0f, 0x0b' in text.split('\n')

    with raises(TranslationFailed) as exc:
        translate(framed("\t.bogus_directive 1\n\tmov rax, rdi"))
    assert isinstance(exc.value.errors[0], ParseError)
    assert exc.value.errors[0].lineno == 5


def test_gather_fails_one_function():
    gather = framed("\tvgatherdps ymm0, dword ptr [rdi + 4*ymm1], ymm2", name='gather')
    with raises(TranslationFailed) as exc:
        translate(fma_asm + gather)
    errors = exc.value.errors
    assert [type(e) for e in errors] == [UnsupportedInstructionError]
    assert errors[0].function == 'gather'


def test_helper_call():
    asm = ("\t.text\ncopy:\n\tpush rbp\n\tmov rbp, rsp\n\tcall memcpy@PLT\n"
           "\tvmovaps xmm0, xmmword ptr [rip + .LCPI0_0]\n\tpop rbp\n\tret\n"
           "\t.section .rodata.cst16,\"aM\",@progbits,16\n\t.p2align 4\n.LCPI0_0:\n"
           "\t.quad 1\n\t.quad 2\n")
    result = translate(asm, stub_package='simd')
    lines = result.text.split('\n')
    i = lines.index('\tCALL simd·_memcpy(SB)')
    # the pool register is reloaded after every call
    assert lines[i + 1] == '\tLEAQ LCDATA<>(SB), BX'
    assert result.functions[0].frame_size > 0
    assert result.functions[0].arg_count == 3


def test_labels_and_jumps():
    asm = ("\t.text\nloop:\n\tpush rbp\n\tmov rbp, rsp\n\ttest rdi, rdi\n\tje .LBB0_2\n"
           ".LBB0_1:\n\tdec rdi\n\tjne .LBB0_1\n.LBB0_2:\n\tpop rbp\n\tret\n")
    lines = translate(asm, strip_comments=True).text.split('\n')
    assert '\tJEQ LBB0_2' in lines
    assert '\tJNE LBB0_1' in lines
    assert 'LBB0_1:' in lines
    assert 'LBB0_2:' in lines


def test_keep_directives():
    asm = fma_asm.replace("# %bb.0:", "\t.cfi_startproc")
    asm = asm.replace("\tmov\trbp, rsp\n", "\tmov\trbp, rsp\n\t.cfi_def_cfa_register rbp\n")
    text = translate(asm, keep_directives=True).text
    assert '\t// .cfi_def_cfa_register rbp' in text.split('\n')
    assert '.cfi' not in translate(asm).text


def test_all_or_nothing():
    bad = ("\t.text\nbad:\n\tpush rbp\n\tmov rbp, rsp\n\tcall printf@PLT\n"
           "\tpop rbp\n\tret\n"
           "worse:\n\tpush rbp\n\tmov rbp, rsp\n\tfrobnicate rax\n\tmov rax, rdi\n"
           "\tfrobnicate rbx\n\tpop rbp\n\tret\n")
    with raises(TranslationFailed) as exc:
        translate(fma_asm + bad, filename='unit.s')
    errors = exc.value.errors
    assert [type(e) for e in errors] == [UnsupportedCallError,
                                         UnsupportedInstructionError,
                                         UnsupportedInstructionError]
    assert [e.function for e in errors] == ['bad', 'worse', 'worse']
    assert errors[1].lineno < errors[2].lineno
    report = exc.value.report().split('\n')
    assert len(report) == 3
    assert report[0].startswith('unit.s:')
    assert 'bad: UnsupportedCallError' in report[0]


def test_fatal_errors():
    with raises(TranslationFailed) as exc:
        translate(fma_asm.replace('[rdi]', '[edi]'))
    assert len(exc.value.errors) == 1
    assert isinstance(exc.value.errors[0], ParseError)

    with raises(TranslationFailed) as exc:
        translate("\t.text\nf:\n\tmov rax, rdi\n\tret\n")
    assert isinstance(exc.value.errors[0], StructuralError)


def test_missing_constant():
    asm = ("\t.data\ncounter:\n\t.quad 0\n\t.text\nf:\n\tpush rbp\n\tmov rbp, rsp\n"
           "\tmov rax, qword ptr [rip + counter]\n\tpop rbp\n\tret\n")
    with raises(TranslationFailed) as exc:
        translate(asm)
    err = exc.value.errors[0]
    assert isinstance(err, MissingConstantDataError)
    assert err.function == 'f'
    assert err.construct == 'counter'


def test_options():
    with raises(TypeError):
        translate(fma_asm, Options(), compact=True)
    result = translate(fma_asm, symbol_prefix='')
    assert result.functions[0].symbol == 'fma'
    assert 'TEXT ·fma(SB), $0-32' in result.text
