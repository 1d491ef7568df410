# -'- coding: utf-8 -'-

from pytest import raises

from c2plan9.asm.parser import parse_asm
from c2plan9.source import Label
from c2plan9.function import Epilogue, extract_functions
from c2plan9.errors import StructuralError


def extract(asm):
    return extract_functions(parse_asm(asm))


simple = """
	.text
	.globl	f
	.p2align	4, 0x90
	.type	f,@function
f:
	.cfi_startproc
	push	rbp
	mov	rbp, rsp
	vmovups	ymm0, ymmword ptr [rdi]
	vmovups	ymmword ptr [rsi], ymm0
	pop	rbp
	vzeroupper
	ret
.Lfunc_end0:
	.size	f, .Lfunc_end0-f
	.cfi_endproc
"""


def test_extract_simple():
    fns = extract(simple)
    assert len(fns) == 1
    fn = fns[0]
    assert fn.name == 'f'
    assert not fn.macho
    assert fn.returns == 1
    assert [i.mnemonic for i in fn.instructions()] == ['vmovups', 'vmovups', 'vzeroupper']
    assert isinstance(fn.body[-1], Epilogue)
    assert fn.locals == 0
    assert fn.realign == 0
    assert fn.pushes == 0


framed = """
	.text
g:
	endbr64
	push	rbp
	mov	rbp, rsp
	push	r14
	push	rbx
	and	rsp, -32
	sub	rsp, 96
	test	rdi, rdi
	je	.LBB1_2
	vmovaps	ymmword ptr [rsp], ymm0
	lea	rsp, [rbp - 16]
	pop	rbx
	pop	r14
	pop	rbp
	ret
.LBB1_2:
	xor	eax, eax
	mov	rsp, rbp
	pop	rbp
	ret
h:
	push	rbp
	mov	rbp, rsp
	leave
	ret
	.size	h, .-h
"""


def test_extract_frame_setup():
    g, h = extract(framed)
    assert g.name == 'g'
    assert g.pushes == 2
    assert g.realign == 32
    assert g.locals == 96
    assert g.returns == 2
    assert '.LBB1_2' in g.labels()
    mnems = [i.mnemonic for i in g.instructions()]
    # prologue and teardowns are gone, everything else is kept
    assert mnems.count('pop') == 2
    assert 'endbr64' not in mnems
    assert mnems[:4] == ['push', 'push', 'and', 'sub']
    assert not [i for i in g.instructions() if i.mnemonic == 'mov']

    assert h.returns == 1
    assert h.instructions() == []


def test_stack_growth_in_body():
    asm = ("\t.text\nf:\n\tpush rbp\n\tmov rbp, rsp\n\tmov rax, rdi\n\tsub rsp, 4096\n"
           "\tor qword ptr [rsp], 0\n\tsub rsp, 512\n\tadd rsp, -16\n\tadd rsp, 64\n"
           "\tleave\n\tret\n")
    fn, = extract(asm)
    assert fn.locals == 4096 + 512 + 16
    assert fn.dynamic_stack is None

    fn, = extract("\t.text\nf:\n\tpush rbp\n\tmov rbp, rsp\n\tsub rsp, rax\n\tleave\n\tret\n")
    assert str(fn.dynamic_stack) == 'sub rsp, rax'
    assert fn.locals == 0


def test_macho_name():
    asm = ("\t.section\t__TEXT,__text,regular,pure_instructions\n"
           "\t.globl\t_f\n_f:\n\tpush rbp\n\tmov rbp, rsp\n\tpop rbp\n\tret\n")
    fn = extract(asm)[0]
    assert fn.macho
    assert fn.label == '_f'
    assert fn.name == 'f'


def test_structural_errors():
    # no frame-pointer prologue
    with raises(StructuralError) as exc:
        extract("\t.text\nf:\n\tmov rax, rdi\n\tret\n")
    assert exc.value.function == 'f'
    assert exc.value.lineno == 3

    # ends inside the body
    with raises(StructuralError):
        extract("\t.text\nf:\n\tpush rbp\n\tmov rbp, rsp\n\tadd rax, 1\n")

    # no return before the end marker
    with raises(StructuralError):
        extract("\t.text\nf:\n\tpush rbp\n\tmov rbp, rsp\n\tadd rax, 1\n.Lfunc_end0:\n")

    # ret without teardown
    with raises(StructuralError):
        extract("\t.text\nf:\n\tpush rbp\n\tmov rbp, rsp\n\tret\n")

    # instruction outside any function
    with raises(StructuralError):
        extract("\t.text\n\tnop\n")

    # input ends before the prologue
    with raises(StructuralError):
        extract("\t.text\nf:\n")


def test_fallthrough_label():
    # code after a label following a return belongs to the body again
    asm = ("\t.text\nf:\n\tpush rbp\n\tmov rbp, rsp\n\tjmp .LBB0_2\n.LBB0_1:\n"
           "\tadd rax, 1\n.LBB0_2:\n\tpop rbp\n\tret\n")
    fn = extract(asm)[0]
    assert fn.labels() == ['.LBB0_1', '.LBB0_2']
    assert [i.mnemonic for i in fn.instructions()] == ['jmp', 'add']
    assert len([r for r in fn.body if isinstance(r, Label)]) == 2
