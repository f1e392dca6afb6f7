import sys
from pathlib import Path

from schwift.schwift_printer import Printer
from schwift.schwift_runtime import ScriptRunner, recursion_report


def run_script_file(file_path: str):
    """Run a Schwift script file non-interactively and exit with appropriate status."""
    p = Path(file_path)
    if not p.is_file():
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    ScriptRunner().run_file(str(p))


def repl():
    print("Schwift REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runner = ScriptRunner()
    printer = Printer(quote_strings=True)

    while True:
        try:
            line = input(">> ").strip()
        except EOFError:
            print("\nExiting.")
            break

        if not line:
            continue
        if line == "exit":
            break

        try:
            result = runner.handle_script(line)
        except RecursionError:
            print(recursion_report("that line").strip("\n"), file=sys.stderr)
            continue
        if result.status == 'error':
            print(result.format_error(), file=sys.stderr)
            continue
        if result.value is not None:
            print(printer.pformat(result.value))


def main():
    """Run a script file when provided, otherwise start the interactive REPL."""
    if len(sys.argv) > 1 and not sys.argv[1].startswith("-"):
        run_script_file(sys.argv[1])
        return
    repl()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nExiting.")
