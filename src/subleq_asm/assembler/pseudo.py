"""
Pseudo-Instruction Expander
===========================

The target machine has one instruction:

    A B C     mem[A] -= mem[B]; if mem[A] <= 0 goto C else fall through

Everything else is lowered by this module into sequences of that
instruction. Expansions are pushed back into the token stream as
ordinary source tokens, so the section parser assembles them exactly as
if they had been typed.

Operands
--------
A pseudo-instruction takes the tokens that follow it on the same source
line, up to its maximum arity. The first token on a later line belongs
to the next statement. `clr` is variadic and clears every operand given.

Temporaries
-----------
`$tmp` and `$tmp2` are scratch words reserved for expansions. They are
allocated (zero-initialized) at the end of the image when referenced.

Templates
---------
Each mnemonic maps to a PseudoOp whose template is a list of lines:

- `x y z`     a primitive instruction
- `x y`       a primitive instruction falling through to the next one
- `{name}:`   a label

`{a}`, `{b}`, `{c}` are replaced by the operands; any other `{name}` is
a label local to one expansion and gets a fresh `$L<n>` name. Two-field
lines get an explicit fall-through label, so every emitted instruction
carries all three fields.

| Mnemonic    | Effect                    | Size (instructions) |
|-------------|---------------------------|---------------------|
| sub a b     | a -= b                    | 1                   |
| clr a ...   | a = 0 (each operand)      | 1 per operand       |
| add a b     | a += b                    | 3                   |
| mov a b     | a = b                     | 4                   |
| neg a       | a = -a                    | 6                   |
| jmp c       | goto c                    | 1                   |
| ble a b c   | if a <= b goto c          | 5                   |
| bge a b c   | if a >= b goto c          | 5                   |
| bgt a b c   | if a > b goto c           | 6                   |
| blt a b c   | if a < b goto c           | 6                   |
| beq a b c   | if a == b goto c          | 8                   |
| bne a b c   | if a != b goto c          | 9                   |
| bt a c      | if a != 0 goto c          | 8                   |
| bf a c      | if a == 0 goto c          | 7                   |
"""

from dataclasses import dataclass
from typing import Optional
import logging
import re

from subleq_asm.errors import AssemblySyntaxError
from subleq_asm.assembler.context import AssemblerContext
from subleq_asm.assembler.tokenizer import Token, TokenStream

logger = logging.getLogger(__name__)


TMP = "$tmp"
TMP2 = "$tmp2"
TEMPORARIES = (TMP, TMP2)

_PLACEHOLDER = re.compile(r"\{(\w+)\}(:?)")

# tmp = a, copied without touching a; the next line subtracts b
_DIFFERENCE = [
    "$tmp $tmp",
    "$tmp2 $tmp2",
    "$tmp2 {a}",
    "$tmp $tmp2",
]

# tmp2 = -a, tmp = a; jumps to {chk} when a <= 0
_SIGN_TEST = [
    "$tmp $tmp",
    "$tmp2 $tmp2",
    "$tmp2 {a}",
    "$tmp $tmp2 {chk}",
]


# =============================================================================
# Pseudo-Instruction Table
# =============================================================================

@dataclass(frozen=True)
class PseudoOp:
    """
    Table entry describing one pseudo-instruction.

    Attributes:
        name: Mnemonic
        params: Operand placeholder names, in source order
        template: Lines of primitive instructions and labels
        variadic: Apply the template once per operand (one param)
    """
    name: str
    params: tuple[str, ...]
    template: tuple[str, ...]
    variadic: bool = False

    @property
    def min_args(self) -> int:
        return len(self.params)

    @property
    def max_args(self) -> Optional[int]:
        return None if self.variadic else len(self.params)

    @property
    def usage(self) -> str:
        suffix = " ..." if self.variadic else ""
        return " ".join((self.name,) + self.params) + suffix


def _op(name: str, params: str, template: list[str], variadic: bool = False) -> PseudoOp:
    return PseudoOp(name, tuple(params.split()), tuple(template), variadic)


PSEUDO_OPS: dict[str, PseudoOp] = {op.name: op for op in (
    _op("sub", "a b", ["{a} {b}"]),
    _op("clr", "a", ["{a} {a}"], variadic=True),
    _op("add", "a b", [
        "$tmp $tmp",
        "$tmp {b}",
        "{a} $tmp",
    ]),
    # b is read before a is cleared, so `mov x x` keeps x
    _op("mov", "a b", [
        "$tmp $tmp",
        "$tmp {b}",
        "{a} {a}",
        "{a} $tmp",
    ]),
    _op("neg", "a", [
        "$tmp $tmp",
        "$tmp {a}",
        "$tmp2 $tmp2",
        "$tmp2 $tmp",
        "{a} {a}",
        "{a} $tmp2",
    ]),
    _op("jmp", "c", ["$tmp $tmp {c}"]),
    _op("ble", "a b c", _DIFFERENCE + [
        "$tmp {b} {c}",
    ]),
    _op("bge", "a b c", [
        "$tmp $tmp",
        "$tmp2 $tmp2",
        "$tmp2 {b}",
        "$tmp $tmp2",
        "$tmp {a} {c}",
    ]),
    _op("bgt", "a b c", _DIFFERENCE + [
        "$tmp {b} {skip}",
        "$tmp $tmp {c}",
        "{skip}:",
    ]),
    _op("blt", "a b c", [
        "$tmp $tmp",
        "$tmp2 $tmp2",
        "$tmp2 {b}",
        "$tmp $tmp2",
        "$tmp {a} {skip}",
        "$tmp $tmp {c}",
        "{skip}:",
    ]),
    _op("beq", "a b c", _DIFFERENCE + [
        "$tmp {b} {chk}",
        "$tmp $tmp {end}",
        "{chk}:",
        "$tmp2 $tmp2",
        "$tmp2 $tmp {c}",
        "{end}:",
    ]),
    _op("bne", "a b c", _DIFFERENCE + [
        "$tmp {b} {chk}",
        "$tmp $tmp {c}",
        "{chk}:",
        "$tmp2 $tmp2",
        "$tmp2 $tmp {end}",
        "$tmp $tmp {c}",
        "{end}:",
    ]),
    _op("bt", "a c", _SIGN_TEST + [
        "$tmp $tmp {c}",
        "{chk}:",
        "$tmp $tmp",
        "$tmp2 $tmp {end}",
        "$tmp $tmp {c}",
        "{end}:",
    ]),
    _op("bf", "a c", _SIGN_TEST + [
        "$tmp $tmp {end}",
        "{chk}:",
        "$tmp $tmp",
        "$tmp2 $tmp {c}",
        "{end}:",
    ]),
)}


def is_pseudo(text: str) -> bool:
    return text in PSEUDO_OPS


# =============================================================================
# Expander
# =============================================================================

class Expander:
    """
    Lowers pseudo-instructions into primitive tokens.

    Usage:
        expander = Expander(ctx)
        expander.expand(mnemonic_token, stream)   # pushes tokens back
    """

    def __init__(self, ctx: AssemblerContext):
        self.ctx = ctx

    def expand(self, mnemonic: Token, stream: TokenStream) -> list[Token]:
        """
        Consume a pseudo-instruction's operands and push its expansion.

        Args:
            mnemonic: The mnemonic token (already consumed)
            stream: Stream the operands are read from and the expansion
                    is pushed back into

        Returns:
            The pushed tokens

        Raises:
            AssemblySyntaxError: If too few operands are on the line
        """
        op = PSEUDO_OPS[mnemonic.text]
        operands = self._gather_operands(op, mnemonic, stream)

        if op.variadic:
            groups = [[operand] for operand in operands]
        else:
            groups = [operands]

        tokens: list[Token] = []
        for group in groups:
            bindings = dict(zip(op.params, group))
            labels: dict[str, str] = {}
            for line in op.template:
                tokens.extend(self._instantiate(line, bindings, labels, mnemonic))

        logger.debug(
            f"{mnemonic.location}: expanded '{op.name}' "
            f"({' '.join(t.text for t in operands)}) into {len(tokens)} tokens"
        )
        stream.push(tokens)
        return tokens

    def _gather_operands(self, op: PseudoOp, mnemonic: Token,
                         stream: TokenStream) -> list[Token]:
        """Take operands from the mnemonic's own source line."""
        operands: list[Token] = []
        while op.max_args is None or len(operands) < op.max_args:
            candidate = stream.peek()
            if (candidate.is_eof
                    or candidate.line != mnemonic.line
                    or candidate.is_label
                    or is_pseudo(candidate.text)):
                break
            operands.append(stream.next())

        if len(operands) < op.min_args:
            raise AssemblySyntaxError(
                f"'{op.name}' expects {op.min_args} operand(s) on its line, got {len(operands)}",
                mnemonic.location,
                hint=f"usage: {op.usage}",
            )
        return operands

    def _instantiate(self, line: str, bindings: dict[str, Token],
                     labels: dict[str, str], mnemonic: Token) -> list[Token]:
        """Turn one template line into synthetic tokens."""
        result = []
        for word in line.split():
            result.append(self._instantiate_word(word, bindings, labels, mnemonic))

        if len(result) == 2:
            # Fall-through: target the word right after this instruction
            after = self.ctx.new_label()
            result.append(self._synthetic(after, mnemonic))
            result.append(self._synthetic(after + ":", mnemonic))
        return result

    def _instantiate_word(self, word: str, bindings: dict[str, Token],
                          labels: dict[str, str], mnemonic: Token) -> Token:
        match = _PLACEHOLDER.fullmatch(word)
        if match is None:
            return self._synthetic(word, mnemonic)

        name, colon = match.groups()
        if name in bindings:
            return self._synthetic(bindings[name].text + colon, bindings[name])

        if name not in labels:
            labels[name] = self.ctx.new_label()
        return self._synthetic(labels[name] + colon, mnemonic)

    @staticmethod
    def _synthetic(text: str, origin: Token) -> Token:
        return Token(text, origin.line, origin.column, origin.filename, synthetic=True)
