# -'- coding: utf-8 -'-
"""
Argument and return value shapes of translated functions.

Every argument occupies one 8-byte slot of the Go ABI0 argument frame and is
either integer class (passed in rdi, rsi, rdx, rcx, r8, r9 under SystemV) or
vector class (passed in xmm0-xmm7). Signatures come from Go declarations::

    func _fma(a, b, c, result unsafe.Pointer)
    func _dot(x, y unsafe.Pointer, n int) (ret float64)

or, when no declaration is given, from the registers a function reads before
writing them (see :mod:`c2plan9.abi`).
"""

import re
from collections import OrderedDict

from .errors import ArgumentSizeError, ParseError


INT = 'int'
FLOAT = 'float'

# Go kinds accepted as 64-bit arguments
arg_kinds = {
    'int': INT, 'int64': INT, 'uint': INT, 'uint64': INT, 'uintptr': INT,
    'unsafe.Pointer': INT,
    'float64': FLOAT,
}

# element sizes for fixed-size array results
_elem_sizes = {
    'byte': 1, 'int8': 1, 'uint8': 1,
    'int16': 2, 'uint16': 2,
    'int32': 4, 'uint32': 4, 'float32': 4,
    'int64': 8, 'uint64': 8, 'float64': 8,
}


class Argument(object):
    """One argument or result: a Go *name* and *kind*.
    """
    def __init__(self, name, kind):
        self.name = name
        self.kind = kind

    @property
    def cls(self):
        """INT or FLOAT register class.
        """
        if self.kind.startswith('*'):
            return INT
        return arg_kinds.get(self.kind)

    def __eq__(self, x):
        return isinstance(x, Argument) and (x.name, x.kind) == (self.name, self.kind)

    def __ne__(self, x):
        return not self == x

    def __repr__(self):
        return "Argument(%r, %r)" % (self.name, self.kind)


class Result(Argument):
    """The single return value. *shape* is 'int', 'float64', 'm128' or 'm256'.
    """
    @property
    def shape(self):
        if self.cls == INT:
            return 'int'
        if self.kind == 'float64':
            return 'float64'
        size = array_size(self.kind)
        if size == 16:
            return 'm128'
        if size == 32:
            return 'm256'
        return None

    @property
    def size(self):
        return {'int': 8, 'float64': 8, 'm128': 16, 'm256': 32}[self.shape]


def array_size(kind):
    """Byte size of a Go fixed-size array type such as ``[4]float64``, or
    None.
    """
    m = re.match(r'\[(\d+)\](\w+)$', kind)
    if m is None or m.groups()[1] not in _elem_sizes:
        return None
    n, elem = m.groups()
    return int(n) * _elem_sizes[elem]


class Signature(object):
    """Ordered arguments and an optional result of one function.
    """
    def __init__(self, name, args=(), result=None, discovered=False):
        self.name = name
        self.args = list(args)
        self.result = result
        self.discovered = discovered

    @classmethod
    def discover(cls, name, nint, nfloat, nstack):
        """Build the signature implied by register discovery: integer
        registers first, then vector registers, then stack slots.
        """
        args = []
        for i in range(nint + nfloat + nstack):
            kind = 'float64' if nint <= i < nint + nfloat else 'unsafe.Pointer'
            args.append(Argument('arg%d' % (i + 1), kind))
        return cls(name, args, discovered=True)

    @property
    def arg_count(self):
        return len(self.args)

    @property
    def arg_size(self):
        """Bytes of the Go argument frame: 8 per argument plus the result
        slot.
        """
        size = 8 * len(self.args)
        if self.result is not None:
            size += self.result.size
        return size

    @property
    def ret_offset(self):
        return 8 * len(self.args)

    def validate(self):
        """Raise ArgumentSizeError for any argument or result outside the
        64-bit, single-register model.
        """
        for arg in self.args:
            if arg.cls is None:
                raise ArgumentSizeError("Argument '%s' of %s has kind %s; only 64-bit "
                                        "integer, pointer and float64 arguments are "
                                        "supported" % (arg.name, self.name, arg.kind),
                                        function=self.name, construct=arg.kind)
        if self.result is not None and self.result.shape is None:
            raise ArgumentSizeError("Result of %s has kind %s; results must be 64-bit "
                                    "integer, float64 or one 128/256-bit vector"
                                    % (self.name, self.result.kind),
                                    function=self.name, construct=self.result.kind)
        return self

    def go_declaration(self):
        """Go source for this signature (without the ``func`` keyword body).
        """
        params = ', '.join('%s %s' % (a.name, a.kind) for a in self.args)
        decl = 'func %s(%s)' % (self.name, params)
        if self.result is not None:
            decl += ' (%s %s)' % (self.result.name, self.result.kind)
        return decl

    def __repr__(self):
        return "<Signature %s>" % self.go_declaration()



#   Go declaration parsing
#----------------------------------------

_func_re = re.compile(r'^\s*func\s+(\w+)\s*\(([^)]*)\)[ \t]*(\(([^)]*)\)|[^\s{/]+)?',
                      re.MULTILINE)


def parse_params(text):
    """Parse a Go parameter list into (name, type) pairs.

    Handles grouped names (``a, b unsafe.Pointer``) and unnamed parameters
    (``unsafe.Pointer, int``).
    """
    parts = [p.strip() for p in text.split(',') if p.strip()]
    if not parts:
        return []
    named = any(len(p.split()) > 1 for p in parts)
    if not named:
        return [('_%d' % i, p) for i, p in enumerate(parts)]
    params = []
    pending = []
    for p in parts:
        tokens = p.split()
        if len(tokens) == 1:
            pending.append(tokens[0])
        else:
            name, kind = tokens[0], ' '.join(tokens[1:])
            for n in pending + [name]:
                params.append((n, kind))
            pending = []
    if pending:
        raise ValueError("Parameters without type: %s" % ', '.join(pending))
    return params


def parse_prototypes(text):
    """Return an OrderedDict mapping function name to Signature for every
    ``func`` declaration in Go source *text*.

    Raises ParseError for a parameter list without types and
    ArgumentSizeError for more than one result.
    """
    sigs = OrderedDict()
    for m in _func_re.finditer(text):
        name, params, results, grouped = m.groups()
        try:
            args = [Argument(n, k) for n, k in parse_params(params)]
            rparams = None
            if results is not None:
                rparams = parse_params(grouped) if grouped is not None else [('ret', results)]
        except ValueError as exc:
            raise ParseError('%s: %s' % (name, exc), function=name, construct=m.group(0))
        result = None
        if rparams is not None:
            if len(rparams) > 1:
                raise ArgumentSizeError("%s returns %d values; only one result is "
                                        "supported" % (name, len(rparams)),
                                        function=name, construct=results)
            if rparams:
                rname, rkind = rparams[0]
                result = Result('ret' if rname.startswith('_') else rname, rkind)
        sigs[name] = Signature(name, args, result)
    return sigs
