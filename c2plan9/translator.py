# -'- coding: utf-8 -'-
"""
Translation pipeline: parse -> extract functions -> build the constant pool
-> translate each function -> emit.

Errors that leave the record stream unusable (ParseError, StructuralError)
abort at once. Every other error is collected per function, and the unit
fails as a whole with a single :class:`TranslationFailed` listing all of
them; a unit with any failing function produces no output.
"""

import struct
import logging as log
from concurrent.futures import ThreadPoolExecutor

from .asm import encode
from .asm.pointer import Pointer
from .asm.parser import parse_asm
from .asm.util import hexstr
from .source import Label, Directive, Instruction, Emission, Native, jumps
from .function import Epilogue, extract_functions
from .constpool import (DataIndex, ConstantPool, access_size, directive_bytes,
                        is_data_directive)
from .signature import parse_prototypes
from .calls import CallResolver
from .errors import (TranslationError, TranslationFailed,
                     UnsupportedInstructionError)
from . import abi
from . import emitter


class Options(object):
    """Translation settings.

    =============== ===============================================================
    strip_comments  omit the ``// source`` comment after each encoded instruction
    compact         group encoded bytes into QUAD/LONG/WORD literals
    keep_directives pass source directives through as comments
    symbol_prefix   prefix added to function names to form Go symbols ('_')
    pool_name       name of the constant pool symbol ('LCDATA')
    stub_package    Go package qualifying helper stub symbols ('')
    allowed_calls   helper names or Helper objects callable from the body
    prototypes      Go declarations (text, or a dict of Signatures)
    jobs            number of worker threads translating functions
    filename        input file name used in diagnostics
    =============== ===============================================================
    """
    def __init__(self, strip_comments=False, compact=False, keep_directives=False,
                 symbol_prefix='_', pool_name='LCDATA', stub_package='',
                 allowed_calls=None, prototypes=None, jobs=1, filename=None):
        self.strip_comments = strip_comments
        self.compact = compact
        self.keep_directives = keep_directives
        self.symbol_prefix = symbol_prefix
        self.pool_name = pool_name
        self.stub_package = stub_package
        self.allowed_calls = allowed_calls
        if isinstance(prototypes, str):
            prototypes = parse_prototypes(prototypes)
        self.prototypes = prototypes or {}
        self.jobs = jobs
        self.filename = filename


class FunctionInfo(object):
    """What a wrapper generator needs to know about one translated function.
    """
    def __init__(self, name, symbol, arg_count, arg_size, frame_size, signature):
        self.name = name
        self.symbol = symbol
        self.arg_count = arg_count
        self.arg_size = arg_size
        self.frame_size = frame_size
        self.signature = signature

    def __repr__(self):
        return "<FunctionInfo %s: %d args, $%d-%d>" % (self.symbol, self.arg_count,
                                                       self.frame_size, self.arg_size)


class TranslationResult(object):
    def __init__(self, text, functions, pool=None):
        self.text = text
        self.functions = functions
        self.pool = pool

    def __str__(self):
        return self.text


class TranslatedFunction(object):
    """Output items of one function (Labels, Directives, Emissions and Native
    lines) with its signature and frame layout.
    """
    def __init__(self, source, symbol, signature, layout, items):
        self.source = source
        self.symbol = symbol
        self.signature = signature
        self.layout = layout
        self.items = items

    @property
    def frame_size(self):
        return self.layout.size

    @property
    def arg_size(self):
        return self.signature.arg_size

    def info(self):
        return FunctionInfo(self.source.name, self.symbol, self.signature.arg_count,
                            self.arg_size, self.frame_size, self.signature)



def translate(text, options=None, **kwds):
    """Translate Intel-syntax assembly *text* to Go Plan9 assembly.

    Accepts an Options instance or its keyword arguments. Returns a
    TranslationResult; raises TranslationFailed when any function fails.
    """
    if options is None:
        options = Options(**kwds)
    elif kwds:
        raise TypeError("Pass either options or keyword arguments, not both.")
    return Translator(options).run(text)


class Translator(object):
    """Translation context of one input unit: its data index, constant pool
    and call resolver.
    """
    def __init__(self, options):
        self.options = options
        self.resolver = CallResolver(options.allowed_calls, options.stub_package)
        self.pool = ConstantPool(options.pool_name)
        self.index = None

    def run(self, text):
        opts = self.options
        try:
            records = parse_asm(text)
            functions = extract_functions(records)
            self.index = DataIndex(records)
        except TranslationError as err:
            raise TranslationFailed([err], opts.filename)
        log.info('Translating %d function(s)' % len(functions))

        # pool slots are assigned in source order before any worker starts
        failed = {}
        for fn in functions:
            try:
                self.require_constants(fn)
            except TranslationError as err:
                failed[fn.label] = [err.located(fn.name)]
        self.pool.layout()

        todo = [fn for fn in functions if fn.label not in failed]
        if opts.jobs > 1 and len(todo) > 1:
            with ThreadPoolExecutor(max_workers=opts.jobs) as pool:
                results = list(pool.map(self.translate_function, todo))
        else:
            results = [self.translate_function(fn) for fn in todo]

        translated = []
        errors = []
        done = dict((fn.label, res) for fn, res in zip(todo, results))
        for fn in functions:
            if fn.label in failed:
                errors.extend(failed[fn.label])
                continue
            tf, errs = done[fn.label]
            if errs:
                errors.extend(errs)
            else:
                translated.append(tf)
        if errors:
            raise TranslationFailed(errors, opts.filename)

        text = emitter.render(translated, self.pool, compact=opts.compact,
                              comments=not opts.strip_comments,
                              keep_directives=opts.keep_directives)
        return TranslationResult(text, [tf.info() for tf in translated], self.pool)

    def require_constants(self, fn):
        for inst in fn.instructions():
            for ptr in inst.pointers():
                if ptr.rip_relative:
                    blob = self.index.lookup(ptr.symbol, fn.name, inst.lineno)
                    self.pool.require(blob, access_size(ptr))

    def symbol(self, fn):
        prefix = self.options.symbol_prefix
        if fn.name.startswith(prefix):
            return fn.name
        return prefix + fn.name

    def translate_function(self, fn):
        """Return (TranslatedFunction or None, errors) for *fn*.
        """
        errors = []
        symbol = self.symbol(fn)
        problems = [inst.problem.located(fn.name, inst.lineno)
                    for inst in fn.instructions() if inst.problem is not None]
        if problems:
            return None, problems
        try:
            sig = abi.resolve_signature(fn, symbol, self.options.prototypes)
            slots = abi.assign_arguments(sig)
            layout = abi.plan_frame(fn, slots, self.resolver.reserve(fn))
            pool_reg = abi.pool_register(fn) if fn.references() else None
        except TranslationError as err:
            return None, [err.located(fn.name)]

        items = [Native(line) for line in
                 abi.preamble(slots, layout, self.pool.name, pool_reg)]
        labels = set(fn.labels())
        for rec in fn.body:
            if isinstance(rec, Directive) and is_data_directive(rec.name):
                try:
                    items.append(self.translate_data(rec, fn))
                except TranslationError as err:
                    errors.append(err.located(fn.name, rec.lineno))
            elif isinstance(rec, (Label, Directive)):
                items.append(rec)
            elif isinstance(rec, Epilogue):
                items.extend(Native(line) for line in abi.epilogue(sig, layout))
            elif isinstance(rec, Instruction):
                try:
                    items.extend(self.translate_instruction(rec, fn, labels, pool_reg))
                except TranslationError as err:
                    errors.append(err.located(fn.name, rec.lineno))
        if errors:
            return None, errors
        log.info('Translated %s: $%d-%d' % (symbol, layout.size, sig.arg_size))
        return TranslatedFunction(fn, symbol, sig, layout, items), []

    def translate_data(self, directive, fn):
        """Return the Emission of a data directive placed among the
        instructions of *fn* (eg. ``.byte 0x0f, 0x0b``).
        """
        try:
            code = directive_bytes(directive)
        except (ValueError, IndexError, struct.error) as exc:
            raise UnsupportedInstructionError("Cannot emit '%s': %s" % (directive, exc),
                                              function=fn.name, lineno=directive.lineno,
                                              construct=directive.name)
        return Emission(directive, code)

    def translate_instruction(self, inst, fn, labels, pool_reg):
        """Return the output items replacing *inst*.
        """
        mnem = inst.mnemonic
        if inst.is_jump:
            if inst.target not in labels:
                self.resolver.check_jump(inst, fn)
            return [Native('%s %s' % (jumps[mnem], emitter.plan9_label(inst.target)), inst)]
        if inst.is_call:
            out = [self.resolver.rewrite(inst, fn)]
            if pool_reg is not None:
                # helper stubs follow the Go convention and may clobber it
                out.append(Native(abi.load_pool(self.pool.name, pool_reg)))
            return out
        if mnem in ('vzeroupper', 'vzeroall'):
            return [Native(mnem.upper(), inst)]

        if any(isinstance(op, Pointer) and op.rip_relative for op in inst.operands):
            ops = tuple(self.pool.rebase(op, pool_reg)
                        if isinstance(op, Pointer) and op.rip_relative else op
                        for op in inst.operands)
            enc = inst.replace(operands=ops)
        else:
            enc = inst
        try:
            code = encode(enc.mnemonic, *enc.operands, prefix=enc.prefix)
        except TypeError as exc:
            raise UnsupportedInstructionError("Cannot encode '%s': %s" % (inst, exc),
                                              function=fn.name,
                                              lineno=inst.lineno, construct=mnem)
        log.debug('%s: %s -> %s' % (fn.name, inst, hexstr(code)))
        return [Emission(inst, code)]
