"""Flow orchestration: one browser, one page, every flow in order.

Each step reports a StepResult instead of raising; the flow runner turns
a FATAL result into FatalRunError, which ends the run after the browser
has been closed.
"""

from typing import List

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from locator_resolver import LocatorResolver
from portal_auth import PortalSession
from run_reporter import RunReporter
from shot_models import (
    CaptureError,
    FatalRunError,
    Flow,
    FlowPlan,
    FlowStep,
    RunConfig,
    RunSummary,
    StepOutcome,
    StepResult,
)
from shot_recorder import ShotRecorder


class StepExecutor:
    """Runs a single FlowStep: navigate, settle, interact, capture."""

    def __init__(self, page, resolver: LocatorResolver, recorder: ShotRecorder, reporter: RunReporter, base_url: str, overlay_settle_ms: int = 500):
        self.page = page
        self.resolver = resolver
        self.recorder = recorder
        self.reporter = reporter
        self.base_url = base_url.rstrip("/")
        self.overlay_settle_ms = overlay_settle_ms

    def absolute_url(self, url: str) -> str:
        if url.startswith(("http://", "https://")):
            return url
        return self.base_url + "/" + url.lstrip("/")

    async def _settle(self, step: FlowStep) -> None:
        if step.ready:
            if not await self.resolver.wait_for_any(self.page, step.ready, step.settle_ms):
                self.reporter.detail(f"No ready marker after {step.settle_ms}ms, continuing")
        elif step.settle_ms:
            await self.page.wait_for_timeout(step.settle_ms)

    async def execute(self, step: FlowStep, full_page: bool = False) -> StepResult:
        page = self.page
        outcome = StepOutcome.SUCCESS
        try:
            if step.url:
                target = self.absolute_url(step.url)
                self.reporter.detail(f"Navigating to {target}")
                await page.goto(target)
            await self._settle(step)

            if step.interaction:
                inter = step.interaction
                res = await self.resolver.resolve(page, inter.candidates, inter.action, inter.value)
                if res.found:
                    await page.wait_for_timeout(step.interaction_settle_ms)
                else:
                    self.reporter.not_found(inter.target)
                    outcome = StepOutcome.SKIPPED_OPTIONAL
                    if not inter.capture_if_missing:
                        return StepResult(outcome, step)

            if step.dismiss_overlays:
                await page.keyboard.press("Escape")
                await page.wait_for_timeout(self.overlay_settle_ms)

            if step.capture:
                path = await self.recorder.capture(page, step.capture, full_page=full_page)
                self.reporter.captured(step.capture)
                return StepResult(outcome, step, capture_path=path)
        except (PlaywrightError, CaptureError) as e:
            return StepResult(StepOutcome.FATAL, step, error=e)
        return StepResult(outcome, step)


class FlowRunner:
    def __init__(self, plan: FlowPlan, session: PortalSession, executor: StepExecutor, reporter: RunReporter, config: RunConfig):
        self.plan = plan
        self.session = session
        self.executor = executor
        self.reporter = reporter
        self.config = config

    def full_page_for(self, flow: Flow) -> bool:
        if self.config.full_page is not None:
            return self.config.full_page
        return flow.full_page

    async def _prepare_session(self, flow: Flow, full_page: bool) -> None:
        session = self.session
        if flow.switch_role:
            await session.switch_role()
        if flow.role is None:
            return
        if flow.role == session.active_role:
            self.reporter.detail(f"Reusing {flow.role.value} session")
            return
        if session.active_role is not None:
            await session.switch_role()
        await session.authenticate(
            flow.role,
            self.config.credentials.get(flow.role),
            capture_name=flow.login_capture,
            full_page=full_page,
            filled_capture_name=flow.login_filled_capture,
        )

    async def run_flow(self, flow: Flow) -> List[StepResult]:
        self.reporter.banner(flow.title)
        full_page = self.full_page_for(flow)
        try:
            await self.executor.page.set_viewport_size(self.plan.viewport_for(flow).as_playwright())
            await self._prepare_session(flow, full_page)
        except (PlaywrightError, CaptureError) as e:
            raise FatalRunError(f"Flow '{flow.name}' setup failed: {e}") from e

        results = []
        for idx, step in enumerate(flow.steps, 1):
            result = await self.executor.execute(step, full_page=full_page)
            if result.is_fatal:
                raise FatalRunError(f"Flow '{flow.name}' step {idx}: {result.error}") from result.error
            results.append(result)
        return results


async def run_flows(config: RunConfig, plan: FlowPlan, reporter: RunReporter) -> RunSummary:
    """Run every flow of the plan in one browser session and summarize the output directory."""
    resolver = LocatorResolver(timeout_ms=config.selector_timeout_ms, reporter=reporter)
    recorder = ShotRecorder(config.output_dir)
    if config.clean:
        removed = recorder.clear()
        reporter.detail(f"Removed {removed} old screenshots from {config.output_dir}")

    if plan.flows:
        first_viewport = plan.viewport_for(plan.flows[0])
        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=config.headless)
            try:
                context = await browser.new_context(viewport=first_viewport.as_playwright())
                page = await context.new_page()
                page.set_default_timeout(config.default_timeout_ms)

                session = PortalSession(context, page, resolver, recorder, reporter, config.base_url)
                executor = StepExecutor(page, resolver, recorder, reporter, config.base_url)
                runner = FlowRunner(plan, session, executor, reporter, config)
                skipped = 0
                for flow in plan.flows:
                    results = await runner.run_flow(flow)
                    skipped += sum(1 for r in results if r.outcome == StepOutcome.SKIPPED_OPTIONAL)
                if skipped:
                    reporter.detail(f"{skipped} optional step(s) skipped")
            finally:
                try:
                    await browser.close()
                    reporter.detail("Browser closed")
                except PlaywrightError as e:
                    reporter.detail(f"Error closing browser: {e}")

    return reporter.summarize(config.output_dir)
