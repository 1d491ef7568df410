# -'- coding: utf-8 -'-
"""
Call-site resolver.

Inlined machine code cannot call arbitrary C functions: the Go linker knows
nothing about them. Only a short allow-list of helpers is accepted, each
assumed to have a hand-written Plan9 stub that takes its arguments in the
SystemV registers (rdi, rsi, rdx)::

    call    memcpy@PLT      ->      CALL ·_memcpy(SB)
"""

import logging as log
from collections import OrderedDict

from .source import Native
from .errors import UnsupportedCallError


class Helper(object):
    """An allow-listed call target.

    *stub* is the Go symbol of its Plan9 stub (default: the name with a
    leading underscore), *nargs* the number of register arguments it reads
    and *reserve* the stack bytes the call needs below the caller's stack
    pointer (return address plus the stub's own frame).
    """
    def __init__(self, name, stub=None, nargs=3, reserve=32):
        self.name = name
        self.stub = stub or '_' + name
        self.nargs = nargs
        self.reserve = reserve

    def __repr__(self):
        return "<Helper %s -> %s>" % (self.name, self.stub)


default_helpers = (
    Helper('memcpy'),
    Helper('memset'),
    Helper('memmove'),
)


def target_name(symbol, macho=False):
    """Strip linker decorations from a call target: ``memcpy@PLT`` and, on
    Mach-O, the leading underscore of ``_memcpy``.
    """
    name = symbol.split('@')[0]
    if macho and name.startswith('_'):
        name = name[1:]
    return name


class CallSite(object):
    """One ``call`` instruction, its target and the Helper it resolved to
    (None when rejected).
    """
    def __init__(self, inst, target, helper=None):
        self.inst = inst
        self.target = target
        self.helper = helper

    @property
    def allowed(self):
        return self.helper is not None

    def __repr__(self):
        state = 'allowed' if self.allowed else 'rejected'
        return "<CallSite %s: %s>" % (self.target, state)


class CallResolver(object):
    """Checks call and jump targets against the allow-list and rewrites
    allowed calls to Plan9.

    *allowed* is a sequence of Helper objects or plain names; *package* is
    the Go package qualifying stub symbols (empty for the current package).
    """
    def __init__(self, allowed=None, package=''):
        if allowed is None:
            allowed = default_helpers
        self.helpers = OrderedDict()
        for h in allowed:
            if not isinstance(h, Helper):
                h = Helper(h)
            self.helpers[h.name] = h
        self.package = package

    def __contains__(self, name):
        return name in self.helpers

    def resolve(self, inst, fn):
        """Return the CallSite for call instruction *inst* in function *fn*.

        Raises UnsupportedCallError for indirect calls and targets outside
        the allow-list.
        """
        symbol = inst.target
        if symbol is None:
            raise UnsupportedCallError("Indirect call '%s' is not supported" % inst,
                                       function=fn.name, lineno=inst.lineno,
                                       construct=str(inst))
        name = target_name(symbol, fn.macho)
        helper = self.helpers.get(name)
        if helper is None:
            raise UnsupportedCallError("Call to '%s' is not allowed (allowed: %s)"
                                       % (symbol, ', '.join(self.helpers) or 'none'),
                                       function=fn.name, lineno=inst.lineno,
                                       construct=symbol)
        return CallSite(inst, name, helper)

    def stub_symbol(self, helper):
        return '%s·%s(SB)' % (self.package, helper.stub)

    def rewrite(self, inst, fn):
        """Return the Native ``CALL`` replacing call instruction *inst*.
        """
        site = self.resolve(inst, fn)
        log.debug('Call to %s in %s -> %s' % (site.target, fn.name,
                                              self.stub_symbol(site.helper)))
        return Native('CALL ' + self.stub_symbol(site.helper), inst)

    def check_jump(self, inst, fn):
        """Raise UnsupportedCallError for a jump that leaves *fn* (a tail call
        or an indirect jump).
        """
        target = inst.target
        if target is None:
            raise UnsupportedCallError("Indirect jump '%s' is not supported" % inst,
                                       function=fn.name, lineno=inst.lineno,
                                       construct=str(inst))
        if target not in fn.labels():
            raise UnsupportedCallError("Jump to '%s' leaves function %s" % (target, fn.name),
                                       function=fn.name, lineno=inst.lineno,
                                       construct=target)

    def reserve(self, fn):
        """Stack bytes needed by the helper calls of *fn*.
        """
        need = 0
        for inst in fn.instructions():
            if inst.is_call:
                need = max(need, self.resolve(inst, fn).helper.reserve)
        return need
