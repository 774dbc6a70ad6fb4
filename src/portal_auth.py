import urllib.parse
from typing import Optional

from shot_models import Action, Credential, Role


# Candidate lists per logical login control, most specific first.
ROLE_TABS = {
    Role.CONSUMER: ["[role=tab]:text=Consumer", "role=tab:text=Consumer", "text=Consumer"],
    Role.RETAILER: ["[role=tab]:text=Retailer", "role=tab:text=Retailer", "text=Retailer"],
}

IDENTIFIER_FIELDS = {
    Role.CONSUMER: [
        'input[type="tel"]',
        'input[placeholder*="phone" i]',
        'input[placeholder*="250788"]',
        "label=Phone",
    ],
    Role.RETAILER: [
        'input[type="email"]',
        'input[placeholder*="email" i]',
        'input[placeholder*="@"]',
        "label=Email",
    ],
}

SECRET_FIELDS = {
    Role.CONSUMER: ['input[type="password"]', 'input[placeholder*="PIN"]', "label=PIN"],
    Role.RETAILER: ['input[type="password"]', "label=Password"],
}

SUBMIT_BUTTONS = ['button[type="submit"]', "role=button:text=Sign in", "role=button:text=Login"]

AUTOFILL_BUTTONS = ["button:text=Auto-fill", "role=button:text=Auto-fill"]

CLEAR_STORAGE_JS = "() => { window.localStorage.clear(); window.sessionStorage.clear(); }"


class PortalSession:
    """Authenticated browsing state for one role at a time.

    Login problems are reported and leave the session unauthenticated;
    only navigation and capture errors propagate.
    """

    def __init__(
        self,
        context,
        page,
        resolver,
        recorder,
        reporter,
        base_url: str,
        login_path: str = "/login",
        login_settle_ms: int = 2000,
        tab_settle_ms: int = 500,
        auth_settle_ms: int = 3000,
    ):
        self.context = context
        self.page = page
        self.resolver = resolver
        self.recorder = recorder
        self.reporter = reporter
        self.base_url = base_url.rstrip("/")
        self.login_path = login_path
        self.login_settle_ms = login_settle_ms
        self.tab_settle_ms = tab_settle_ms
        self.auth_settle_ms = auth_settle_ms
        self.active_role: Optional[Role] = None
        self.authenticated = False

    @property
    def login_url(self) -> str:
        return self.base_url + self.login_path

    def _on_login_page(self) -> bool:
        path = urllib.parse.urlparse(self.page.url).path.rstrip("/")
        return path == self.login_path.rstrip("/")

    def _on_app_origin(self) -> bool:
        cur = urllib.parse.urlparse(self.page.url)
        base = urllib.parse.urlparse(self.base_url)
        return (cur.scheme, cur.netloc) == (base.scheme, base.netloc)

    async def authenticate(
        self,
        role: Role,
        credential: Optional[Credential] = None,
        capture_name: Optional[str] = None,
        full_page: bool = False,
        filled_capture_name: Optional[str] = None,
    ) -> bool:
        """Log in as role. Returns True only if the login page was left behind.

        Without a credential the page's demo auto-fill button is used, if any.
        capture_name is taken of the empty form, filled_capture_name of the
        filled form just before submit.
        """
        self.active_role = role
        self.authenticated = False
        page = self.page

        await page.goto(self.login_url)
        await page.wait_for_timeout(self.login_settle_ms)

        tab = await self.resolver.resolve(page, ROLE_TABS[role], Action.CLICK)
        if tab.found:
            await page.wait_for_timeout(self.tab_settle_ms)
        else:
            self.reporter.not_found(f"{role.value} tab")

        if capture_name:
            await self.recorder.capture(page, capture_name, full_page=full_page)
            self.reporter.captured(capture_name)

        filled = credential is not None and await self._fill_credentials(credential)
        if not filled:
            autofill = await self.resolver.resolve(page, AUTOFILL_BUTTONS, Action.CLICK)
            if not autofill.found:
                reason = "credential fields not found" if credential else "no credentials configured"
                self.reporter.auth_failed(role.value, reason)
                return False
            self.reporter.detail("Used demo auto-fill credentials")
            await page.wait_for_timeout(self.tab_settle_ms)

        if filled_capture_name:
            await self.recorder.capture(page, filled_capture_name, full_page=full_page)
            self.reporter.captured(filled_capture_name)

        submit = await self.resolver.resolve(page, SUBMIT_BUTTONS, Action.CLICK)
        if not submit.found:
            self.reporter.auth_failed(role.value, "submit button not found")
            return False
        await page.wait_for_timeout(self.auth_settle_ms)

        if self._on_login_page():
            self.reporter.auth_failed(role.value, "still on login page after submit")
            return False
        self.authenticated = True
        self.reporter.detail(f"Signed in as {role.value}")
        return True

    async def _fill_credentials(self, credential: Credential) -> bool:
        ident = await self.resolver.resolve(
            self.page, IDENTIFIER_FIELDS[credential.role], Action.FILL, credential.identifier
        )
        if not ident.found:
            return False
        secret = await self.resolver.resolve(
            self.page, SECRET_FIELDS[credential.role], Action.FILL, credential.secret.get_secret_value()
        )
        return secret.found

    async def switch_role(self) -> None:
        """Drop cookies and web storage so the next login starts clean."""
        await self.context.clear_cookies()
        if not self._on_app_origin():
            await self.page.goto(self.login_url)
        await self.page.evaluate(CLEAR_STORAGE_JS)
        self.reporter.detail(f"Cleared session state (was {self.active_role.value if self.active_role else 'anonymous'})")
        self.active_role = None
        self.authenticated = False
