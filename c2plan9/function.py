# -'- coding: utf-8 -'-
"""
Function extractor: partitions the parsed record stream into functions
bounded by a frame-pointer prologue and one or more epilogues.

    f:                          <- function label
        push    rbp             <- prologue (stripped)
        mov     rbp, rsp        <- prologue (stripped)
        push    rbx             <- kept; callee-saved register
        and     rsp, -32        <- kept; source realignment (A = 32)
        sub     rsp, 64         <- kept; local stack requirement (N = 64)
        ...
        lea     rsp, [rbp - 8]  <- kept
        pop     rbx             <- kept
        pop     rbp             <- teardown (replaced by Epilogue)
        vzeroupper              <- kept
        ret                     <- replaced by Epilogue
"""

import logging as log

from .asm.register import rbp, rsp
from .asm.immediate import Immediate
from .source import Record, Label, Directive, Instruction
from .errors import StructuralError


# extractor states
SEEKING_PROLOGUE = 'seeking prologue'
IN_BODY = 'in body'
SEEKING_EPILOGUE = 'seeking epilogue'

# instructions after which control never falls through
terminators = ('ret', 'jmp', 'ud2')


class Epilogue(Record):
    """Marks a return point. Replaces the frame teardown and the ``ret``.
    """
    def __init__(self, lineno=None, label=None, section=None):
        self.lineno = lineno
        self.label = label
        self.section = section

    def __repr__(self):
        return "<Epilogue line %s>" % self.lineno


class SourceFunction(object):
    """Instructions between a recognized prologue and the end of the
    function, with the prologue's ``push rbp; mov rbp, rsp`` removed and each
    teardown + ``ret`` replaced by an :class:`Epilogue`.

    *locals* is the sum of the body's ``sub rsp, N`` amounts, *realign* the
    alignment of a prologue ``and rsp, -A`` (0 if none) and *pushes* the
    number of registers pushed before the body proper begins.
    *dynamic_stack* is the first instruction that moves rsp by a non-constant
    amount, if any.
    """
    def __init__(self, label, lineno=None, section=None):
        self.label = label
        self.lineno = lineno
        self.section = section
        self.in_setup = True
        self.body = []
        self.locals = 0
        self.realign = 0
        self.pushes = 0
        self.dynamic_stack = None

    @property
    def name(self):
        """Function name without the Mach-O underscore.
        """
        if self.label.startswith('_') and self.macho:
            return self.label[1:]
        return self.label

    @property
    def macho(self):
        return self.section is not None and self.section.startswith('__')

    def instructions(self):
        return [rec for rec in self.body if isinstance(rec, Instruction)]

    def labels(self):
        return [rec.name for rec in self.body if isinstance(rec, Label)]

    @property
    def returns(self):
        return len([rec for rec in self.body if isinstance(rec, Epilogue)])

    def references(self):
        """rip-relative data symbols in order of first use.
        """
        syms = []
        for inst in self.instructions():
            for ptr in inst.pointers():
                if ptr.rip_relative and ptr.symbol not in syms:
                    syms.append(ptr.symbol)
        return syms

    def __repr__(self):
        return "<SourceFunction %s: %d records>" % (self.name, len(self.body))


def is_text(section):
    return section is not None and (section == '.text' or section.startswith('.text.') or
                                    section == '__TEXT,__text')


def is_function_label(rec):
    return isinstance(rec, Label) and is_text(rec.section) and not rec.is_local


def is_function_end(rec, fn):
    """True for records that close function *fn*: its ``.size`` directive,
    a ``.Lfunc_end`` label or a switch to another section.
    """
    if isinstance(rec, Directive):
        if rec.name == '.size' and rec.argv and rec.argv[0] == fn.label:
            return True
        return not is_text(rec.section)
    if isinstance(rec, Label):
        return 'func_end' in rec.name or is_function_label(rec)
    return False


def _is(inst, mnemonic, *operands):
    return (isinstance(inst, Instruction) and inst.mnemonic == mnemonic and
            inst.operands == operands)


def extract_functions(records):
    """Partition *records* into a list of SourceFunctions.

    Raises StructuralError for a function without a frame-pointer prologue,
    a function with no return, a teardown that cannot be recognized, or
    input that ends inside a function body.
    """
    functions = []
    state = SEEKING_PROLOGUE
    fn = None
    prologue = []

    def finish(rec):
        if state == IN_BODY:
            where = 'end of input' if rec is None else 'line %d' % rec.lineno
            if fn.returns == 0:
                msg = 'Function %s has no return before %s' % (fn.label, where)
            else:
                msg = 'Function %s falls through to %s' % (fn.label, where)
            raise StructuralError(msg, function=fn.label, lineno=fn.lineno,
                                  construct=fn.label)
        log.info('Function %s: %d instructions, %d return(s), locals=%d' %
                 (fn.name, len(fn.instructions()), fn.returns, fn.locals))
        functions.append(fn)

    for rec in records:
        if fn is None:
            if is_function_label(rec):
                fn = SourceFunction(rec.name, rec.lineno, rec.section)
                prologue = []
                state = SEEKING_PROLOGUE
            elif isinstance(rec, Instruction):
                raise StructuralError('Instruction outside of any function: %s' % rec,
                                      lineno=rec.lineno, construct=rec.mnemonic)
            continue

        if state == SEEKING_PROLOGUE:
            if isinstance(rec, Instruction):
                if rec.mnemonic == 'endbr64' and not prologue:
                    # branch-target marker; Go code is never an indirect target
                    continue
                prologue.append(rec)
                if len(prologue) == 1 and _is(rec, 'push', rbp):
                    continue
                if len(prologue) == 2 and _is(rec, 'mov', rbp, rsp):
                    state = IN_BODY
                    continue
                raise StructuralError('Function %s does not begin with a frame-pointer '
                                      'prologue (push rbp; mov rbp, rsp)' % fn.label,
                                      function=fn.label, lineno=rec.lineno,
                                      construct=str(rec))
            elif is_function_end(rec, fn):
                raise StructuralError('Function %s has no body' % fn.label,
                                      function=fn.label, lineno=rec.lineno,
                                      construct=fn.label)
            fn.body.append(rec)
            continue

        if is_function_end(rec, fn):
            finish(rec)
            fn = None
            state = SEEKING_PROLOGUE
            if is_function_label(rec):
                fn = SourceFunction(rec.name, rec.lineno, rec.section)
                prologue = []
            continue

        if isinstance(rec, Instruction):
            _scan_frame_setup(fn, rec)
            if rec.is_ret:
                _close_return(fn, rec)
                state = SEEKING_EPILOGUE
                continue
            state = SEEKING_EPILOGUE if rec.mnemonic in terminators else IN_BODY
        elif isinstance(rec, Label) and state == SEEKING_EPILOGUE:
            state = IN_BODY
        fn.body.append(rec)

    if fn is not None:
        if state == SEEKING_PROLOGUE:
            raise StructuralError('Input ends before the prologue of %s' % fn.label,
                                  function=fn.label, lineno=fn.lineno,
                                  construct=fn.label)
        finish(None)
    return functions


def _scan_frame_setup(fn, inst):
    """Record the pushes and source realignment of the instructions that
    directly follow the prologue, and the local stack requirement of every
    ``sub rsp, N`` in the body.

    Each ``sub rsp, N`` adds N, so a body that grows its stack in steps (such
    as gcc's stack-clash probing ``sub rsp, 4096; or [rsp], 0; sub rsp, 512``)
    is given room for all of them. An adjustment by a register or symbol is
    kept in *dynamic_stack*.
    """
    ops = inst.operands
    if inst.mnemonic in ('sub', 'add') and ops[:1] == (rsp,) and len(ops) == 2:
        if not isinstance(ops[1], Immediate) or ops[1].is_symbolic:
            if fn.dynamic_stack is None:
                fn.dynamic_stack = inst
        else:
            grow = ops[1].value if inst.mnemonic == 'sub' else -ops[1].value
            if grow > 0:
                fn.locals += grow
        return
    if not fn.in_setup:
        return
    if inst.mnemonic == 'push':
        fn.pushes += 1
        return
    if (inst.mnemonic == 'and' and ops[:1] == (rsp,) and len(ops) == 2 and
            isinstance(ops[1], Immediate) and ops[1].value < 0):
        fn.realign = max(fn.realign, -ops[1].value)
        return
    fn.in_setup = False


def _close_return(fn, ret):
    """Replace the frame teardown that precedes *ret* with an Epilogue.

    Recognized teardowns (vzeroupper/vzeroall may sit on either side of the
    teardown and are kept)::

        pop rbp
        mov rsp, rbp; pop rbp
        leave
    """
    body = fn.body
    insts = [i for i, rec in enumerate(body) if isinstance(rec, Instruction)]
    pos = len(insts) - 1

    def skip_vzero(pos):
        while pos >= 0 and body[insts[pos]].mnemonic in ('vzeroupper', 'vzeroall'):
            pos -= 1
        return pos

    pos = skip_vzero(pos)
    remove = []
    if pos >= 0 and _is(body[insts[pos]], 'leave'):
        remove.append(insts[pos])
    elif pos >= 0 and _is(body[insts[pos]], 'pop', rbp):
        remove.append(insts[pos])
        if pos >= 1 and _is(body[insts[pos - 1]], 'mov', rsp, rbp):
            remove.append(insts[pos - 1])
    else:
        raise StructuralError('Cannot find frame teardown (pop rbp or leave) before '
                              'ret in %s' % fn.label, function=fn.label,
                              lineno=ret.lineno, construct='ret')
    for i in sorted(remove, reverse=True):
        del body[i]
    body.append(Epilogue(lineno=ret.lineno, label=ret.label, section=ret.section))
