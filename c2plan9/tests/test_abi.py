# -'- coding: utf-8 -'-

from pytest import raises

from c2plan9.asm.register import registers, rdi, rsi, rdx, rcx, rbx, r12, rax
from c2plan9.asm.parser import parse_asm, parse_instruction
from c2plan9.function import extract_functions
from c2plan9.signature import Signature, Argument, Result, parse_prototypes
from c2plan9.errors import (ArgumentSizeError, AlignmentError, RegisterAllocationError,
                            UnsupportedInstructionError)
from c2plan9 import abi


def function(body, name='f'):
    """Wrap *body* in a frame-pointer prologue and epilogue and extract it.
    """
    asm = "\t.text\n%s:\n\tpush rbp\n\tmov rbp, rsp\n%s\n\tpop rbp\n\tret\n" % (name, body)
    return extract_functions(parse_asm(asm))[0]


fma_body = """
	vmovups	ymm0, ymmword ptr [rdi]
	vmovups	ymm1, ymmword ptr [rsi]
	vfmadd213ps	ymm1, ymm0, ymmword ptr [rdx]
	vmovups	ymmword ptr [rcx], ymm1
	vzeroupper
"""


def test_access():
    reads, writes, narrow = abi.access(parse_instruction('add rax, rdi'))
    assert reads == [rax, rdi]
    assert writes == [rax]

    reads, writes, narrow = abi.access(parse_instruction('mov rax, qword ptr [rsi + 8*rdx]'))
    assert reads == [rsi, rdx]
    assert writes == [rax]

    # zeroing idioms only write
    reads, writes, narrow = abi.access(parse_instruction('vxorps xmm0, xmm0, xmm0'))
    assert reads == []
    assert writes == [registers['xmm0']]

    # shift count in cl is a read of rcx
    reads, writes, narrow = abi.access(parse_instruction('shl rax, cl'))
    assert rcx in reads

    reads, writes, narrow = abi.access(parse_instruction('addss xmm0, xmm1'))
    assert registers['xmm1'] in narrow

    reads, writes, narrow = abi.access(parse_instruction('cqo'))
    assert (reads, writes) == ([rax], [rdx])

    reads, writes, narrow = abi.access(parse_instruction('rep movsb'))
    assert rcx in reads and rsi in reads and rdi in reads

    reads, writes, narrow = abi.access(parse_instruction('call memcpy@PLT'))
    assert reads == [rdi, rsi, rdx]
    assert rax in writes


def test_discover_pointers():
    fn = function(fma_body)
    sig = abi.discover_signature(fn, '_f')
    assert sig.name == '_f'
    assert sig.discovered
    assert sig.arg_count == 4
    assert sig.arg_size == 32
    assert all(a.kind == 'unsafe.Pointer' for a in sig.args)


def test_discover_gaps():
    # rsi is never touched but rdx is read: rsi is still an argument
    fn = function("\tmov rax, qword ptr [rdi]\n\tadd rax, rdx\n")
    assert abi.discover_signature(fn).arg_count == 3

    # written before read: not an argument
    fn = function("\tmov rsi, rdi\n\tadd rax, rsi\n")
    assert abi.discover_signature(fn).arg_count == 1

    # zeroing is a write
    fn = function("\txor esi, esi\n\tadd rax, rsi\n")
    assert abi.discover_signature(fn).arg_count == 0


def test_discover_floats():
    fn = function("\tmov rax, qword ptr [rdi]\n\taddsd xmm0, xmm1\n")
    sig = abi.discover_signature(fn)
    assert [a.kind for a in sig.args] == ['unsafe.Pointer', 'float64', 'float64']
    slots = abi.assign_arguments(sig)
    assert [s.register for s in slots] == [rdi, registers['xmm0'], registers['xmm1']]


def test_discover_stack_arguments():
    fn = function("\tmov rax, qword ptr [rbp + 16]\n\tadd rax, qword ptr [rbp + 24]\n")
    sig = abi.discover_signature(fn)
    # stack arguments follow all six integer registers
    assert sig.arg_count == 8
    slots = abi.assign_arguments(sig)
    assert [s.spill for s in slots[6:]] == [0, 1]
    assert slots[7].fp == 'arg8+56(FP)'


def test_discover_narrow_arguments():
    with raises(ArgumentSizeError) as exc:
        abi.discover_signature(function("\tmovsxd rax, edi\n"))
    assert exc.value.construct == 'movsxd rax, edi'
    with raises(ArgumentSizeError):
        abi.discover_signature(function("\tmov eax, esi\n"))
    with raises(ArgumentSizeError):
        abi.discover_signature(function("\taddss xmm0, xmm1\n"))
    with raises(ArgumentSizeError):
        abi.discover_signature(function("\tmov eax, dword ptr [rbp + 16]\n"))


def test_resolve_signature():
    fn = function(fma_body)
    protos = parse_prototypes('func _f(a, b, c, d unsafe.Pointer) (r int)')
    sig = abi.resolve_signature(fn, '_f', protos)
    assert sig is protos['_f']
    assert not sig.discovered
    sig = abi.resolve_signature(fn, '_f', {})
    assert sig.discovered
    with raises(ArgumentSizeError):
        abi.resolve_signature(fn, '_f', parse_prototypes('func _f(a int32)'))


def test_assign_arguments():
    sig = Signature('_g', [Argument('x', 'float64')] * 9 +
                    [Argument('p', 'unsafe.Pointer')])
    slots = abi.assign_arguments(sig)
    assert slots[7].register is registers['xmm7']
    assert slots[8].register is None
    assert slots[8].spill == 0
    assert slots[9].register is rdi
    assert slots[9].offset == 72


def test_frame_layout():
    layout = abi.FrameLayout(locals=64, spills=1, pushes=2, align=32, realign=32)
    assert layout.realign_pad == 24
    assert layout.size == 160
    assert layout.base_offset == 136
    assert abi.FrameLayout(framed=False).size == 0

    for locals in (0, 8, 24, 64, 200):
        for spills in (0, 1, 3):
            for pushes in (0, 1, 5):
                for align in (16, 32):
                    layout = abi.FrameLayout(locals, spills, pushes, 32, align)
                    size = layout.size
                    assert size % align == 0
                    # the aligned base still leaves room for everything below it
                    below = layout.base_offset - (align - 8)
                    assert below >= locals + 8 * pushes + 32
                    assert size >= 16 + 8 * spills + below


def test_plan_frame():
    fn = function(fma_body)
    layout = abi.plan_frame(fn, abi.assign_arguments(abi.discover_signature(fn)))
    assert not layout.framed
    assert layout.size == 0

    fn = function("\tpush rbx\n\tand rsp, -32\n\tsub rsp, 64\n"
                  "\tvmovaps ymmword ptr [rsp + 32], ymm0\n\tlea rsp, [rbp - 8]\n\tpop rbx\n")
    layout = abi.plan_frame(fn, [])
    assert layout.framed
    assert layout.align == 32
    assert layout.pushes == 1
    assert layout.locals == 64
    assert layout.size == (16 + 64 + 8 + 24 + 24 + 31) // 32 * 32

    # every sub rsp counts, not only the one after the prologue
    fn = function("\tmov rax, rdi\n\tsub rsp, 4096\n\tmov qword ptr [rsp], rax\n\tmov rsp, rbp\n")
    layout = abi.plan_frame(fn, [])
    assert layout.locals == 4096
    assert layout.size >= 4096

    with raises(UnsupportedInstructionError) as exc:
        abi.plan_frame(function("\tsub rsp, rdi\n\tmov rsp, rbp\n"), [])
    assert exc.value.construct == 'sub rsp, rdi'


def test_alignment_errors():
    with raises(AlignmentError):
        abi.plan_frame(function("\tsub rsp, 12\n"), [])
    with raises(AlignmentError):
        abi.plan_frame(function("\tand rsp, -32\n\tsub rsp, 64\n"
                                "\tvmovaps ymmword ptr [rsp + 16], ymm0\n"), [])
    with raises(AlignmentError):
        # no realignment: the rsp offset from the aligned base is not a multiple of 32
        abi.plan_frame(function("\tsub rsp, 40\n"
                                "\tvmovaps ymmword ptr [rsp], ymm0\n"), [])
    # unaligned moves never constrain the frame
    abi.plan_frame(function("\tsub rsp, 40\n\tvmovups ymmword ptr [rsp], ymm0\n"), [])


def test_pool_register():
    assert abi.pool_register(function(fma_body)) is rbx
    assert abi.pool_register(function("\tpush rbx\n\tmov rbx, rdi\n\tpop rbx\n")) is r12
    body = '\n'.join('\tinc %s' % r for r in abi.pool_candidates)
    with raises(RegisterAllocationError):
        abi.pool_register(function(body))


def test_go_register():
    assert abi.go_register(rdi) == 'DI'
    assert abi.go_register(registers['r8']) == 'R8'
    assert abi.go_register(registers['xmm3']) == 'X3'
    assert abi.go_register(registers['ymm12']) == 'Y12'
    with raises(TypeError):
        abi.go_register(registers['eax'])


def test_preamble_frameless():
    sig = parse_prototypes('func _fma(a, b, c, result unsafe.Pointer)')['_fma']
    slots = abi.assign_arguments(sig)
    lines = abi.preamble(slots, abi.FrameLayout(framed=False), 'LCDATA', rbx)
    assert lines == [
        'MOVQ a+0(FP), DI',
        'MOVQ b+8(FP), SI',
        'MOVQ c+16(FP), DX',
        'MOVQ result+24(FP), CX',
        'LEAQ LCDATA<>(SB), BX',
    ]
    assert abi.epilogue(sig, abi.FrameLayout(framed=False)) == ['RET']


def test_preamble_framed():
    sig = Signature('_g', [Argument('x', 'float64')] +
                    [Argument('p%d' % i, 'int') for i in range(7)],
                    Result('ret', 'float64'))
    slots = abi.assign_arguments(sig)
    layout = abi.FrameLayout(locals=16, spills=1)
    lines = abi.preamble(slots, layout)
    assert lines[0] == 'MOVSD x+0(FP), X0'
    assert lines[1] == 'MOVQ p0+8(FP), DI'
    assert lines[6:] == [
        'MOVQ p5+48(FP), R9',
        'MOVQ SP, BP',
        'ADDQ $%d, BP' % layout.base_offset,
        'ANDQ $-16, BP',
        'MOVQ SP, 0(BP)',
        'MOVQ p6+56(FP), AX',
        'MOVQ AX, 16(BP)',
        'MOVQ BP, SP',
    ]
    assert abi.epilogue(sig, layout) == ['MOVQ 0(BP), SP', 'MOVSD X0, ret+64(FP)', 'RET']


def test_result_stores():
    layout = abi.FrameLayout(framed=False)
    for kind, line in [('int', 'MOVQ AX, r+8(FP)'),
                       ('[4]float32', 'MOVUPS X0, r+8(FP)'),
                       ('[4]float64', 'VMOVDQU Y0, r+8(FP)')]:
        sig = Signature('_h', [Argument('p', 'int')], Result('r', kind))
        assert abi.epilogue(sig, layout) == [line, 'RET']
