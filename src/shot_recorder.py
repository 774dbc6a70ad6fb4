from pathlib import Path

from playwright.async_api import Error as PlaywrightError

from shot_models import CAPTURE_NAME_RE, CaptureError


class ShotRecorder:
    """Writes page screenshots as <output_dir>/<name>.png.

    Re-capturing a name overwrites the previous file, so a rerun never
    accumulates duplicates.
    """

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)

    def path_for(self, name: str) -> Path:
        if not CAPTURE_NAME_RE.match(name):
            raise CaptureError(f"Invalid capture name: {name!r}")
        return self.output_dir / f"{name}.png"

    async def capture(self, page, name: str, full_page: bool = False) -> Path:
        path = self.path_for(name)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(path), full_page=full_page)
        except (OSError, PlaywrightError) as e:
            raise CaptureError(f"Could not write {path}: {e}") from e
        return path

    def clear(self) -> int:
        """Delete existing screenshots; returns how many were removed."""
        if not self.output_dir.is_dir():
            return 0
        removed = 0
        for old in self.output_dir.glob("*.png"):
            old.unlink()
            removed += 1
        return removed
