# -'- coding: utf-8 -'-

import collections

from .register import Register
from .pointer import Pointer, rex
from .immediate import Immediate
from .modrm import encode_modrm


#   Legacy and VEX prefix tables
#----------------------------------------

# instruction prefixes that may precede a mnemonic in the source
instruction_prefixes = {
    'lock': b'\xf0',
    'rep': b'\xf3',
    'repe': b'\xf3',
    'repz': b'\xf3',
    'repne': b'\xf2',
    'repnz': b'\xf2',
}

# VEX.pp implied mandatory prefix
vex_pp = {None: 0, '66': 1, 'F3': 2, 'F2': 3}

# VEX.mmmmm implied leading opcode bytes
vex_map = {'0F': 1, '0F38': 2, '0F3A': 3}

# operand roles fixed by the opcode; they carry no encoding bits
implicit_operands = ('AL/', 'CL', '1')


def vex_prefix(w, r, x, b, pp, m, l, v=0):
    """Build a 2- or 3-byte VEX prefix.

    *r*, *x*, *b* are the REX-style extension bits (True when the
    corresponding register number is >= 8); VEX stores them inverted, as it
    does the 4-bit *v* register number. The short C5 form is used whenever
    it can express the instruction, as GNU as does.
    """
    v = (~v) & 0b1111
    if x or b or m != 1 or w:
        return bytes(bytearray([
            0xc4,
            ((not r) << 7) | ((not x) << 6) | ((not b) << 5) | m,
            (w << 7) | (v << 3) | (l << 2) | pp]))
    else:
        return bytes(bytearray([0xc5, ((not r) << 7) | (v << 3) | (l << 2) | pp]))


class OpcodeSpec(object):
    """Parsed form of an Intel-manual opcode column entry, such as::

        REX.W + 81 /0
        f30f6f /r
        b8+rd
        VEX.NDS.256.66.0F38.W0 A8 /r
        VEX.NDD.256.66.0F.WIG 72 /6 ib
    """
    def __init__(self, text):
        self.text = text
        self.vex = None
        self.rexw = False
        self.prefix = b''
        self.opcode = None
        self.reg_in_opcode = False
        self.opcode_ext = None

        parts = text.split(' ')
        if parts[0].startswith('VEX.'):
            self.vex = self.parse_vex(parts[0])
            parts = parts[1:]
        elif parts[:2] == ['REX.W', '+']:
            parts = parts[2:]
            self.rexw = True

        opcode_s = parts[0]
        if '+' in opcode_s:
            opcode_s = opcode_s.partition('+')[0]
            self.reg_in_opcode = True
        opcode = bytearray.fromhex(opcode_s)

        # split off mandatory prefix (eg. f3 in f30f6f); it must precede REX
        if self.vex is None and len(opcode) > 1 and opcode[0] in (0x66, 0xf2, 0xf3):
            self.prefix = bytes(opcode[:1])
            opcode = opcode[1:]
        self.opcode = opcode

        for part in parts[1:]:
            if part == '/r' or part == '/is4':
                continue
            elif part.startswith('/'):
                self.opcode_ext = int(part[1])

    def parse_vex(self, field):
        """Return dict with keys w, l, pp, m from a VEX opcode field.
        """
        vex = {'w': 0, 'l': 0, 'pp': 0, 'm': 1}
        for tok in field.split('.')[1:]:
            if tok in ('NDS', 'NDD', 'DDS'):
                continue
            elif tok in ('128', 'L0', 'LZ', 'LIG'):
                vex['l'] = 0
            elif tok in ('256', 'L1'):
                vex['l'] = 1
            elif tok in ('66', 'F2', 'F3'):
                vex['pp'] = vex_pp[tok]
            elif tok in vex_map:
                vex['m'] = vex_map[tok]
            elif tok in ('W0', 'WIG'):
                vex['w'] = 0
            elif tok == 'W1':
                vex['w'] = 1
            else:
                raise ValueError("Invalid VEX field '%s' in opcode '%s'" % (tok, field))
        return vex


class Mnemonic(object):
    """Encoding rules for one mnemonic.

    Subclasses are the encoding table: each maps operand signatures to an
    opcode and an operand encoding, using the notation of the Intel manual::

        modes = {
            ('r/m64', 'r64'): ['REX.W + 89 /r', 'mr'],
            ('ymm1', 'ymm2', 'ymm3/m256'): ['VEX.NDS.256.0F.WIG 58 /r', 'rvm'],
        }
        operand_enc = {
            'mr': ['ModRM:r/m (w)', 'ModRM:reg (r)'],
            'rvm': ['ModRM:reg (w)', 'VEX.vvvv (r)', 'ModRM:r/m (r)'],
        }

    Instantiate with operands (Register, Pointer or Immediate) and read
    :attr:`code` for the machine code.
    """
    # Variables to be overridden by Mnemonic subclasses:
    modes = {}  # maps operand signature to instruction modes
    operand_enc = {}  # maps operand type to encoding mode

    def __init__(self, *args, **kwds):
        self.args = []
        for arg in args:
            if isinstance(arg, int):
                arg = Immediate(arg)
            self.args.append(arg)
        self.prefix = kwds.pop('prefix', None)
        if kwds:
            raise TypeError("Unexpected keyword arguments: %s" % ', '.join(kwds))

        self._sig = None
        self._opsize = None
        self._vector = False
        self._use_sig = None
        self._mode = None
        self._code = None

    def __len__(self):
        return len(self.code)

    def __str__(self):
        args = ', '.join(map(str, self.args))
        name = self.name if self.prefix is None else self.prefix + ' ' + self.name
        return (name + ' ' + args).strip()

    @property
    def name(self):
        return self.__class__.__name__.rstrip('_')

    @property
    def sig(self):
        """The signature of arguments provided for this instruction.

        This is a tuple with strings like 'r32', 'm256', 'ymm', and 'imm8'.
        """
        if self._sig is None:
            self.read_signature()
        return self._sig

    @property
    def use_sig(self):
        """The argument signature supported by this instruction that is
        compatible with the supplied arguments.
        """
        if self._use_sig is None:
            self.select_instruction_mode()
        return self._use_sig

    @property
    def mode(self):
        """The selected encoding mode to use for this instruction.
        """
        if self._mode is None:
            self.select_instruction_mode()
        return self._mode

    @property
    def code(self):
        """The compiled machine code for this instruction.
        """
        if self._code is None:
            self._code = self.generate_code()
        return self._code

    def read_signature(self):
        """Determine signature of argument types.

        Sets self._sig to a tuple of strings like 'r32', 'm128', 'ymm' and
        'imm8', self._opsize to the size of the first sized operand and
        self._vector to whether any operand is an xmm or ymm register.
        """
        sig = []
        opsize = None
        vector = False
        for arg in self.args:
            if isinstance(arg, Register):
                if arg.kind in ('xmm', 'ymm'):
                    sig.append(arg.kind)
                    vector = True
                elif arg.kind == 'gp':
                    sig.append('r%d' % arg.bits)
                else:
                    raise TypeError("Register %s cannot be used as an operand." % arg.name)
                if opsize is None:
                    opsize = arg.bits
            elif isinstance(arg, Pointer):
                if arg.bits is None:
                    sig.append('m')
                else:
                    sig.append('m%d' % arg.bits)
                    if opsize is None:
                        opsize = arg.bits
            elif isinstance(arg, Immediate):
                if arg.is_symbolic:
                    raise TypeError("Symbolic operand '%s' cannot be encoded." % arg.symbol)
                bits = [b for b in (8, 16, 32, 64) if arg.fits(b)]
                if not bits:
                    raise TypeError("Immediate %s does not fit in 64 bits." % arg)
                bits = bits[0]
                ubits = [b for b in (8, 16, 32, 64) if arg.value > 0 and arg.fits(b, signed=False)]
                if ubits and ubits[0] < bits:
                    # the 'u' flag is a hint that the imm can be packed
                    # smaller using uint. This will only be used if no modes
                    # support a larger imm.
                    sig.append('imm%du' % bits)
                else:
                    sig.append('imm%d' % bits)
            else:
                raise TypeError("Invalid argument type %s." % type(arg))
        self._sig = tuple(sig)
        self._opsize = opsize
        self._vector = vector

    def select_instruction_mode(self):
        """Select a compatible instruction mode from self.modes based on the
        signature of arguments provided.

        Sets self._use_sig to the compatible signature selected.
        Sets self._mode to the instruction mode selected.
        """
        modes = self.modes
        sig = self.sig

        # Check each instruction mode one at a time to see whether it is
        # compatible with supplied arguments. Modes are listed in order of
        # preference.
        backup_mode = None
        for mode in modes:
            if len(mode) != len(sig):
                continue
            usemode = True
            for i in range(len(mode)):
                check = self.check_mode(sig[i], mode[i], self.args[i])
                if check is True:
                    continue
                elif check is False:
                    usemode = False
                    break
                elif isinstance(check, int):
                    # ok, but would prefer another mode if possible
                    if isinstance(usemode, int) and usemode is not True:
                        usemode = min(usemode, check)
                    else:
                        usemode = check
                    continue
                else:
                    raise RuntimeError("Invalid return type from check_mode().")
            if usemode is True:
                self._use_sig = mode
                self._mode = modes[mode]
                return
            elif usemode is not False:
                if backup_mode is None or backup_mode[0] < usemode:
                    backup_mode = (usemode, mode)

        if backup_mode is not None:
            self._use_sig = backup_mode[1]
            self._mode = modes[backup_mode[1]]
            return

        raise TypeError('Argument types not accepted for instruction %s: %s'
                        % (self.name, ', '.join(sig) or '(none)'))

    def check_mode(self, sig, mode, arg):
        """Return True if an argument of type *sig* may be used to satisfy
        operand type *mode*.

        The method may instead return an integer to indicate that the mode is
        encodable but not preferred.

        *sig* may look like 'r16', 'm32', 'imm8', 'xmm', 'ymm', etc.
        *mode* may look like 'r8', 'r/m32', 'xmm2/m64', 'ymm3/m256', 'm',
        'imm8', or a literal operand such as 'cl', 'eax' or '1'.
        """
        if mode in ('1',):
            return isinstance(arg, Immediate) and arg.value == 1
        if mode in ('al', 'ax', 'eax', 'rax', 'cl'):
            return isinstance(arg, Register) and arg.name == mode

        if '/m' in mode and not mode.startswith('r/m'):
            # handle mode like "xmm2/m64" or "r32/m16"
            left, _, right = mode.partition('/')
            return self.check_mode(sig, left, arg) or self.check_mode(sig, right, arg)

        sbits = sig.lstrip('irmx/ym')
        stype = sig[:-len(sbits)] if len(sbits) > 0 else sig
        sbits = sbits.rstrip('u')
        mbits = mode.lstrip('irmx/ym')
        mtype = mode[:-len(mbits)] if len(mbits) > 0 else mode
        try:
            mbits = int(mbits)
        except ValueError:
            mbits = 0
        try:
            sbits = int(sbits)
        except ValueError:
            sbits = 0

        if mtype in ('xmm', 'ymm'):
            # register number suffix (xmm1, ymm2) is not a size
            return stype == mtype
        if mtype == 'r':
            return stype == 'r' and mbits == sbits
        elif mtype == 'r/m':
            return stype in ('r', 'm') and (sbits == 0 or mbits == sbits)
        elif mtype == 'imm':
            if stype != 'imm':
                return False
            if mbits >= sbits:
                return True
            elif sig[-1] == 'u' and mbits >= sbits // 2 and (mbits == self._opsize or
                                                          self._vector):
                # Indicates the mode is encodable but not preferred. Vector
                # instructions take imm8 as an unsigned control byte.
                return 0
            else:
                return False
        elif mtype == 'm':
            if stype != 'm':
                return False
            if mbits > 0 and sbits > 0 and mbits != sbits:
                return False
            return True
        raise ValueError("Invalid operand type '%s'" % mode)

    def parse_operands(self, spec):
        """Use supplied arguments and selected operand encodings to determine
        how to encode operands.

        Returns a tuple of 7 items:

            1. prefixes: a list of prefix strings
            2. rex_byt: an integer REX byte (0 for no REX byte)
            3. opcode_reg: a register to encode as the last 3 bits of the opcode
               (or None)
            4. reg: register to use in the reg field of a ModR/M byte
            5. rm: register or pointer to use in the r/m field of a ModR/M byte
            6. vvvv: register to encode in VEX.vvvv (or None)
            7. imm: immediate string
        """
        reg = None
        rm = None
        vvvv = None
        imm = b''
        prefixes = []
        rex_byt = 0
        opcode_reg = None
        mode = self.mode
        encs = self.operand_enc[mode[1]] if mode[1] is not None else []
        if spec.vex is None and not spec.prefix and self._opsize == 16:
            # operand-size override for 16-bit general-purpose operations
            prefixes.append(b'\x66')
        for i, arg in enumerate(self.args):
            enc = encs[i]
            if enc is None or enc.startswith(implicit_operands):
                continue
            if isinstance(arg, Register) and arg.needs_rex:
                rex_byt |= 0b01000000
            if enc.startswith('opcode +r'):
                opcode_reg = arg
                if arg.rex:
                    rex_byt |= rex.b
            elif enc.startswith('ModRM:r/m'):
                rm = arg
            elif enc.startswith('ModRM:reg'):
                reg = arg
            elif enc.startswith('VEX.vvvv'):
                vvvv = arg
            elif enc.startswith('imm8[7:4]'):
                imm += bytes(bytearray([arg.number << 4]))
            elif enc.startswith('imm'):
                immsize = int(self.use_sig[i][3:].rstrip('u'))
                imm += arg.pack(immsize)
            else:
                raise RuntimeError("Invalid operand encoding: %s" % enc)
        return prefixes, rex_byt, opcode_reg, reg, rm, vvvv, imm

    def generate_code(self):
        """Generate complete bytecode for this instruction.
        """
        spec = self.mode[0]
        prefixes, rex_byt, opcode_reg, reg, rm, vvvv, imm = self.parse_operands(spec)

        # decide value for ModR/M reg field
        if reg is None:
            reg = spec.opcode_ext
        elif spec.opcode_ext is not None:
            raise RuntimeError("Cannot encode both register and opcode "
                               "extension in ModR/M.")

        opcode = bytearray(spec.opcode)
        if opcode_reg is not None:
            opcode[-1] |= opcode_reg.val

        modrm = b''
        if rm is not None:
            mrex, modrm = encode_modrm(reg if reg is not None else 0, rm)
            rex_byt |= mrex

        if self.prefix is not None:
            try:
                prefixes.insert(0, instruction_prefixes[self.prefix])
            except KeyError:
                raise TypeError("Unknown instruction prefix '%s'" % self.prefix)

        if spec.vex is not None:
            for arg in self.args:
                if isinstance(arg, Register) and arg.needs_rex:
                    raise TypeError("Register %s requires a REX prefix, which "
                                    "cannot be combined with VEX." % arg.name)
            vex = spec.vex
            v = 0 if vvvv is None else vvvv.number
            pfx = vex_prefix(vex['w'], bool(rex_byt & 0b100), bool(rex_byt & 0b010),
                             bool(rex_byt & 0b001), vex['pp'], vex['m'], vex['l'], v)
            return b''.join(prefixes) + pfx + bytes(opcode) + modrm + imm

        if spec.rexw:
            rex_byt |= rex.w
        if rex_byt:
            for arg in self.args:
                if isinstance(arg, Register) and arg.high_byte:
                    raise TypeError("Register %s cannot be encoded with a REX "
                                    "prefix." % arg.name)
            rex_code = bytes(bytearray([rex_byt]))
        else:
            rex_code = b''

        return (b''.join(prefixes) + spec.prefix + rex_code + bytes(opcode) +
                modrm + imm)


def modes(*entries):
    """Build an ordered mode table from (signature, opcode, encoding) tuples.
    """
    return collections.OrderedDict([(tuple(sig), [OpcodeSpec(op), enc])
                                    for sig, op, enc in entries])
