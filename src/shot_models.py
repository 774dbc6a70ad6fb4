"""Data models for portal screenshot runs.

Viewport profiles, credentials, flow steps and flows are frozen pydantic
models so a flow file can be validated once and then shared freely.
Step results and run summaries are plain dataclasses built at run time.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator


CAPTURE_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class CaptureError(Exception):
    """A screenshot could not be written to the output directory."""


class FatalRunError(Exception):
    """A step failed in a way that invalidates the rest of the run."""


class Role(str, Enum):
    CONSUMER = "consumer"
    RETAILER = "retailer"


class Action(str, Enum):
    CLICK = "click"
    FILL = "fill"


class ViewportProfile(BaseModel):
    """Named width x height pair simulating a device class."""

    model_config = ConfigDict(frozen=True)

    label: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)

    def as_playwright(self) -> dict:
        return {"width": self.width, "height": self.height}


DESKTOP = ViewportProfile(label="desktop", width=1400, height=900)
MOBILE = ViewportProfile(label="mobile", width=390, height=844)


class Credential(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    identifier: str
    secret: SecretStr


def _check_capture_name(name: Optional[str]) -> Optional[str]:
    if name is not None and not CAPTURE_NAME_RE.match(name):
        raise ValueError(f"Capture name '{name}' may only contain letters, digits, '_' and '-'")
    return name


class Interaction(BaseModel):
    """One click or fill on the first candidate that resolves."""

    model_config = ConfigDict(frozen=True)

    candidates: List[str] = Field(min_length=1)
    action: Action = Action.CLICK
    value: Optional[str] = None
    description: Optional[str] = None
    capture_if_missing: bool = False

    @model_validator(mode="after")
    def _fill_needs_value(self):
        if self.action == Action.FILL and self.value is None:
            raise ValueError("A fill interaction needs a value")
        return self

    @property
    def target(self) -> str:
        return self.description or self.candidates[0]


class FlowStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: Optional[str] = None
    settle_ms: int = Field(default=2500, ge=0)
    ready: List[str] = Field(default_factory=list)
    interaction: Optional[Interaction] = None
    interaction_settle_ms: int = Field(default=1500, ge=0)
    dismiss_overlays: bool = False
    capture: Optional[str] = None

    @field_validator("capture")
    @classmethod
    def _valid_capture(cls, value):
        return _check_capture_name(value)


class Flow(BaseModel):
    """An ordered user journey bound to one viewport profile."""

    model_config = ConfigDict(frozen=True)

    name: str
    title: str
    viewport: str = "desktop"
    role: Optional[Role] = None
    switch_role: bool = False
    login_capture: Optional[str] = None
    login_filled_capture: Optional[str] = None
    full_page: bool = False
    steps: List[FlowStep] = Field(default_factory=list)

    @field_validator("login_capture", "login_filled_capture")
    @classmethod
    def _valid_login_capture(cls, value):
        return _check_capture_name(value)

    @model_validator(mode="after")
    def _login_capture_needs_role(self):
        if (self.login_capture or self.login_filled_capture) and self.role is None:
            raise ValueError(f"Flow '{self.name}' has a login capture but no role")
        return self

    def capture_names(self) -> List[str]:
        names = [n for n in (self.login_capture, self.login_filled_capture) if n]
        names.extend(s.capture for s in self.steps if s.capture)
        return names


class FlowPlan(BaseModel):
    """Viewport set plus the flows that run against it, in order."""

    model_config = ConfigDict(frozen=True)

    viewports: Dict[str, ViewportProfile] = Field(
        default_factory=lambda: {DESKTOP.label: DESKTOP, MOBILE.label: MOBILE}
    )
    flows: List[Flow] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_references(self):
        seen = set()
        for flow in self.flows:
            if flow.viewport not in self.viewports:
                raise ValueError(f"Flow '{flow.name}' uses unknown viewport '{flow.viewport}'")
            for name in flow.capture_names():
                if name in seen:
                    raise ValueError(f"Capture name '{name}' is used more than once")
                seen.add(name)
        return self

    def select(self, names: Optional[List[str]] = None) -> "FlowPlan":
        """Return a plan restricted to the named flows, keeping plan order."""
        if not names:
            return self
        known = {f.name for f in self.flows}
        unknown = [n for n in names if n not in known]
        if unknown:
            raise ValueError(f"Unknown flow(s): {', '.join(unknown)}")
        return FlowPlan(viewports=self.viewports, flows=[f for f in self.flows if f.name in names])

    def viewport_for(self, flow: Flow) -> ViewportProfile:
        return self.viewports[flow.viewport]


class StepOutcome(str, Enum):
    SUCCESS = "success"
    SKIPPED_OPTIONAL = "skipped_optional"
    FATAL = "fatal"


@dataclass
class StepResult:
    outcome: StepOutcome
    step: FlowStep
    capture_path: Optional[Path] = None
    error: Optional[BaseException] = None

    @property
    def is_fatal(self) -> bool:
        return self.outcome == StepOutcome.FATAL


@dataclass
class RunSummary:
    output_dir: Path
    files: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.files)


class RunConfig(BaseModel):
    """Static settings for one invocation."""

    base_url: str
    output_dir: Path = Path("prod_shots")
    headless: bool = True
    full_page: Optional[bool] = None
    selector_timeout_ms: int = Field(default=2500, gt=0)
    default_timeout_ms: int = Field(default=30000, gt=0)
    credentials: Dict[Role, Credential] = Field(default_factory=dict)
    clean: bool = False

    @field_validator("base_url")
    @classmethod
    def _absolute_base(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Base URL must be absolute: {value}")
        return value.rstrip("/")
