# -'- coding: utf-8 -'-
"""
Errors raised while translating an assembly unit.

Every error carries the name of the *function* being translated (None when
the error is not tied to one function), the source *lineno* and the failing
*construct* (a mnemonic, operand, symbol or directive). ParseError and
StructuralError abort the whole input at once; the others are collected per
function and raised together as a single :class:`TranslationFailed`.
"""


class TranslationError(Exception):
    def __init__(self, message, function=None, lineno=None, construct=None):
        Exception.__init__(self, message)
        self.message = message
        self.function = function
        self.lineno = lineno
        self.construct = construct

    def located(self, function=None, lineno=None):
        """Fill in missing location information and return self.
        """
        if self.function is None:
            self.function = function
        if self.lineno is None:
            self.lineno = lineno
        return self

    def diagnostic(self, filename=None):
        """Return a one-line diagnostic::

            file.s:12: _sum: UnsupportedInstructionError: no encoding for ...
        """
        loc = filename or '<input>'
        if self.lineno is not None:
            loc += ':%d' % self.lineno
        parts = [loc]
        if self.function is not None:
            parts.append(self.function)
        parts.append('%s: %s' % (self.__class__.__name__, self.message))
        return ': '.join(parts)

    def __str__(self):
        return self.diagnostic()


class ParseError(TranslationError):
    """Malformed source line."""


class StructuralError(TranslationError):
    """Function body that is not bounded by a recognized prologue and epilogue,
    or input that ends inside a function."""


class UnsupportedInstructionError(TranslationError):
    """No encoding rule exists for the mnemonic and operand shapes."""


class UnsupportedCallError(TranslationError):
    """Call or tail-jump to a symbol outside the allow-list."""


class ArgumentSizeError(TranslationError):
    """Argument or return value outside the 64-bit, single-register model."""


class MissingConstantDataError(TranslationError):
    """Instruction-pointer-relative reference to a symbol that is not in a
    read-only data section."""


class AlignmentError(TranslationError):
    """Alignment requirement that the computed frame layout cannot satisfy."""


class RegisterAllocationError(TranslationError):
    """No free register is available to anchor the constant pool."""


# errors that leave the token stream unusable for every function
fatal_errors = (ParseError, StructuralError)


class TranslationFailed(Exception):
    """Raised once per unit with every error collected from its functions.
    """
    def __init__(self, errors, filename=None):
        self.errors = list(errors)
        self.filename = filename
        Exception.__init__(self, self.report())

    def report(self):
        return '\n'.join(err.diagnostic(self.filename) for err in self.errors)

    def __str__(self):
        return self.report()
