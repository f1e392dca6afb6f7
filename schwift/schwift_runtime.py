"""
Script execution: parsing, running, and reporting the outcome of Schwift code.
"""
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Literal, Optional

from lark import Lark
from lark.exceptions import UnexpectedInput, VisitError

from schwift.schwift_datatypes import Statement
from schwift.schwift_errors import SchwiftError, InvalidSyntax
from schwift.schwift_interpreter import Environment, Evaluator, Returned
from schwift.schwift_transformer import SchwiftTransformer


GRAMMAR_PATH = Path(__file__).parent / "grammar" / "schwift.lark"

# Each Schwift call nests about seven Python frames.
RECURSION_LIMIT = 20_000


def recursion_report(where: str) -> str:
    """The report for a script that recursed past RECURSION_LIMIT."""
    return (f"\n    You made a Rickdiculous mistake:\n\n"
            f"    {where} recursed past {RECURSION_LIMIT} interpreter frames. "
            f"It's turtles all the way down Morty, and we ran out of turtles.\n")


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error: Optional[SchwiftError] = None
    source: Optional[str] = None

    def format_error(self) -> str:
        """Formats the error message, prefixed by the offending source when known."""
        if self.status != 'error' or self.error is None:
            return ""
        msg = self.error.panic_message()
        place = self.error.place
        if self.source is not None and place is not None and place.start < place.end:
            return f"{self.source[place.start:place.end]}\n{msg}"
        return msg


class ScriptRunner:
    """Parses, transforms, and executes Schwift code.

    A runner keeps its evaluator (function table) and environment between
    calls, so an interactive session accumulates state line by line.
    """

    _parser: Optional[Lark] = None
    _transformer: Optional[SchwiftTransformer] = None

    def __init__(self, stdout=None, stdin=None):
        if sys.getrecursionlimit() < RECURSION_LIMIT:
            sys.setrecursionlimit(RECURSION_LIMIT)
        if ScriptRunner._parser is None:
            ScriptRunner._parser = Lark(
                GRAMMAR_PATH.read_text(encoding="utf-8"),
                parser="lalr",
                propagate_positions=True,
            )
        if ScriptRunner._transformer is None:
            ScriptRunner._transformer = SchwiftTransformer()

        self.parser = ScriptRunner._parser
        self.transformer = ScriptRunner._transformer
        self.evaluator = Evaluator(stdout=stdout, stdin=stdin)
        self.env = Environment()

    def parse(self, source_code: str) -> List[Statement]:
        """Parses source into statements; syntax errors become InvalidSyntax."""
        try:
            tree = self.parser.parse(source_code)
        except UnexpectedInput as e:
            raise SchwiftError(InvalidSyntax(e)) from e
        try:
            return self.transformer.transform(tree)
        except VisitError as e:
            # Literal decoding and declaration checks fail inside the transformer.
            raise SchwiftError(InvalidSyntax(e.orig_exc)) from e

    def execute(self, statements: List[Statement]) -> Optional[Returned]:
        return self.evaluator.execute(statements, self.env)

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a script without exiting on failure.

        RecursionError is not a Schwift error and propagates to the caller,
        with the environment unwound to the frame it started from.
        """
        depth = self.env.depth
        try:
            result = self.execute(self.parse(source_code))
        except SchwiftError as e:
            return ExecutionResult(status='error', error=e, source=source_code)
        except RecursionError:
            self.env.unwind_to(depth)
            raise
        value = result.value if isinstance(result, Returned) else None
        return ExecutionResult(status='success', value=value, source=source_code)

    def run_file(self, path: str, rng=None, export: Optional[Callable[[], Any]] = None,
                 color: Optional[bool] = None) -> ExecutionResult:
        """Runs a script file; an uncaught error prints the report and exits with status 1."""
        source = Path(path).read_text(encoding="utf-8")
        try:
            result = self.handle_script(source)
        except RecursionError:
            print(recursion_report(path), file=self.evaluator.stdout or sys.stdout)
            if export is not None:
                export()
            raise SystemExit(1)
        if result.status == 'error':
            result.error.panic(path, rng=rng, export=export, out=self.evaluator.stdout, color=color)
        return result
