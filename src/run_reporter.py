import sys
from pathlib import Path

from shot_models import RunSummary


class RunReporter:
    """Console output for a capture run.

    Status lines always print; detail lines only print with verbose=True.
    """

    def __init__(self, verbose: bool = False, out=None, err=None):
        self.verbose = verbose
        self.out = out
        self.err = err

    def _print(self, text: str = "") -> None:
        print(text, file=self.out or sys.stdout, flush=True)

    def banner(self, title: str) -> None:
        self._print(f"\n=== {title.upper()} ===\n")

    def captured(self, name: str) -> None:
        self._print(f"  ✓ {name}")

    def not_found(self, target: str) -> None:
        self._print(f"  - {target} not found")

    def auth_failed(self, role: str, reason: str) -> None:
        self._print(f"  - {role} login failed: {reason}")

    def detail(self, message: str) -> None:
        if self.verbose:
            self._print(f"→ {message}")

    def error(self, message: str) -> None:
        print(f"✖ Error: {message}", file=self.err or sys.stderr, flush=True)

    def summarize(self, output_dir: Path) -> RunSummary:
        """List what is on disk, not what this run thinks it wrote."""
        output_dir = Path(output_dir)
        files = sorted(p.name for p in output_dir.glob("*.png") if p.is_file()) if output_dir.is_dir() else []
        summary = RunSummary(output_dir=output_dir, files=files)
        self._print("\n=== DONE ===")
        self._print(f"Total: {summary.count} screenshots in {output_dir}")
        for name in files:
            self._print(f"  - {name}")
        return summary
