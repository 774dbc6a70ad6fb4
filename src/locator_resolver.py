import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError

from shot_models import Action


TEXT_SUFFIX_RE = re.compile(r"^(?P<base>.+?):text=(?P<text>.+)$")


@dataclass
class Resolution:
    found: bool
    candidate: Optional[str] = None
    attempted: List[str] = field(default_factory=list)


def build_locator(page, expr: str):
    """Translate one candidate expression into a Playwright locator.

    Supported forms:
      text=<t>, role=<role>[:text=<name>], label=<l>, placeholder=<p>,
      testid=<id>, <css>:text=<t>, or any raw CSS / Playwright selector.
    """
    expr = expr.strip()
    if expr.startswith("text="):
        return page.get_by_text(expr[len("text="):]).first
    if expr.startswith("role="):
        role = expr[len("role="):]
        m = TEXT_SUFFIX_RE.match(role)
        if m:
            return page.get_by_role(m.group("base"), name=m.group("text")).first
        return page.get_by_role(role).first
    if expr.startswith("label="):
        return page.get_by_label(expr[len("label="):]).first
    if expr.startswith("placeholder="):
        return page.get_by_placeholder(expr[len("placeholder="):]).first
    if expr.startswith("testid="):
        return page.get_by_test_id(expr[len("testid="):]).first
    m = TEXT_SUFFIX_RE.match(expr)
    if m:
        text = m.group("text").replace('"', '\\"')
        return page.locator(f'{m.group("base")}:has-text("{text}")').first
    return page.locator(expr).first


class LocatorResolver:
    """Try selector candidates in order; act on the first visible one.

    A target that matches none of its candidates is reported back as
    not found and never raises.
    """

    def __init__(self, timeout_ms: int = 2500, poll_ms: int = 250, reporter=None):
        self.timeout_ms = timeout_ms
        self.poll_ms = poll_ms
        self.reporter = reporter

    def _detail(self, message: str) -> None:
        if self.reporter:
            self.reporter.detail(message)

    async def resolve(self, page, candidates: Sequence[str], action: Optional[Action] = None, value: Optional[str] = None) -> Resolution:
        attempted = []
        for cand in candidates:
            attempted.append(cand)
            try:
                loc = build_locator(page, cand)
                await loc.wait_for(state="visible", timeout=self.timeout_ms)
            except PlaywrightError as e:
                self._detail(f"Candidate {cand} not visible: {_first_line(e)}")
                continue
            try:
                if action == Action.CLICK:
                    await loc.click(timeout=self.timeout_ms)
                elif action == Action.FILL:
                    await loc.fill(value or "", timeout=self.timeout_ms)
            except PlaywrightError as e:
                self._detail(f"Candidate {cand} visible but {action.value} failed: {_first_line(e)}")
                continue
            self._detail(f"Resolved via {cand}")
            return Resolution(found=True, candidate=cand, attempted=attempted)
        return Resolution(found=False, attempted=attempted)

    async def wait_for_any(self, page, candidates: Sequence[str], timeout_ms: int) -> bool:
        """Poll until any candidate is visible, for at most timeout_ms of waiting."""
        waited = 0
        while True:
            for cand in candidates:
                try:
                    if await build_locator(page, cand).is_visible():
                        self._detail(f"Ready: {cand} visible after {waited}ms")
                        return True
                except PlaywrightError:
                    continue
            if waited >= timeout_ms:
                return False
            step = min(self.poll_ms, timeout_ms - waited)
            await page.wait_for_timeout(step)
            waited += step


def _first_line(err: Exception) -> str:
    text = str(err).strip()
    return text.splitlines()[0] if text else err.__class__.__name__
