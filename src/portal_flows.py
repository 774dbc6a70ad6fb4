import json
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from shot_models import DESKTOP, MOBILE, Action, Flow, FlowPlan, FlowStep, Interaction, Role


def visit(url: str, capture: Optional[str], settle_ms: int = 2500, **kwargs) -> FlowStep:
    return FlowStep(url=url, settle_ms=settle_ms, capture=capture, **kwargs)


def tab(label: str, capture: str, short: Optional[str] = None, settle_ms: int = 0) -> FlowStep:
    """Click a tab on the current page, then capture it."""
    short = short or label
    return FlowStep(
        settle_ms=settle_ms,
        interaction=Interaction(
            candidates=[
                f"button:text={label}",
                f"[role=tab]:text={short}",
                f"text={label}",
            ],
            action=Action.CLICK,
            description=f"{label} tab",
        ),
        capture=capture,
    )


def pick_location(capture: Optional[str] = None) -> List[FlowStep]:
    """Open the location modal's select and take its first option."""
    return [
        FlowStep(
            settle_ms=0,
            interaction=Interaction(
                candidates=[".ant-modal-content .ant-select", ".ant-select"],
                description="location select",
            ),
            interaction_settle_ms=500,
        ),
        FlowStep(
            settle_ms=0,
            interaction=Interaction(
                candidates=[
                    ".ant-select-dropdown:visible .ant-select-item-option",
                    ".ant-select-item-option",
                    ".ant-select-item",
                ],
                description="location option",
            ),
            interaction_settle_ms=1000,
            capture=capture,
        ),
    ]


CONSUMER_DESKTOP = Flow(
    name="consumer_desktop",
    title="Consumer portal",
    viewport="desktop",
    role=Role.CONSUMER,
    login_capture="01_consumer_login",
    login_filled_capture="02_consumer_login_filled",
    steps=[
        visit("/consumer/shop", "03_shop_location_modal", settle_ms=3000),
        *pick_location(capture="04_shop_location_selected"),
        FlowStep(
            settle_ms=0,
            interaction=Interaction(
                candidates=["button:text=Find", "role=button:text=Find"],
                description="Find stores button",
            ),
            interaction_settle_ms=2000,
        ),
        FlowStep(settle_ms=0, dismiss_overlays=True, capture="05_shop_products"),
        visit("/consumer/orders", "06_my_orders"),
        visit("/consumer/wallet", "07_wallet_overview"),
        tab("My NFC Cards", "08_wallet_nfc_cards", short="NFC"),
        tab("Dashboard Ledger", "09_wallet_dashboard_ledger", short="Dashboard"),
        tab("Credit Ledger", "10_wallet_credit_ledger", short="Credit"),
        visit("/consumer/gas", "11_gas_topup"),
        tab("My Gas Meters", "12_gas_my_meters", short="Meters"),
        tab("Usage History", "13_gas_usage_history", short="Usage"),
        visit("/consumer/rewards", "14_rewards_overview"),
        tab("History", "15_rewards_history"),
        visit("/consumer/profile", "16_profile"),
    ],
)

CONSUMER_MOBILE = Flow(
    name="consumer_mobile",
    title="Consumer mobile views",
    viewport="mobile",
    role=Role.CONSUMER,
    steps=[
        visit("/consumer/shop", "17_mobile_shop"),
        visit("/consumer/orders", "18_mobile_orders", settle_ms=2000),
        visit("/consumer/wallet", "19_mobile_wallet", settle_ms=2000),
        visit("/consumer/gas", "20_mobile_gas", settle_ms=2000),
        # bottom navigation bar as it sits on the last page
        FlowStep(settle_ms=0, capture="21_mobile_bottom_nav"),
    ],
)

RETAILER_DESKTOP = Flow(
    name="retailer_desktop",
    title="Retailer portal",
    viewport="desktop",
    role=Role.RETAILER,
    switch_role=True,
    login_capture="22_retailer_login",
    steps=[
        visit("/retailer/dashboard", "23_retailer_dashboard", settle_ms=3000),
        visit("/retailer/pos", "24_retailer_pos"),
        visit("/retailer/add-stock", "25_retailer_add_stock"),
        visit("/retailer/inventory", "26_retailer_inventory"),
        visit("/retailer/orders", "27_retailer_orders"),
        visit("/retailer/wallet", "28_retailer_wallet"),
        tab("Credit", "29_retailer_credit"),
        visit("/retailer/management", "30_retailer_management"),
        tab("Card Transactions", "31_retailer_card_transactions", short="Card"),
        tab("Gas Rewards", "32_retailer_gas_rewards", short="Gas"),
        tab("Profit Invoices", "33_retailer_profit_invoices", short="Profit"),
        visit("/retailer/analytics", "34_retailer_analytics", settle_ms=3000),
    ],
)

RETAILER_MOBILE = Flow(
    name="retailer_mobile",
    title="Retailer mobile views",
    viewport="mobile",
    role=Role.RETAILER,
    steps=[
        visit("/retailer/dashboard", "35_mobile_retailer_dashboard"),
        FlowStep(settle_ms=0, capture="36_mobile_retailer_nav"),
        visit("/retailer/add-stock", "37_mobile_add_stock", settle_ms=2000),
        visit("/retailer/management", "38_mobile_management", settle_ms=2000),
    ],
)


def default_plan() -> FlowPlan:
    return FlowPlan(
        viewports={DESKTOP.label: DESKTOP, MOBILE.label: MOBILE},
        flows=[CONSUMER_DESKTOP, CONSUMER_MOBILE, RETAILER_DESKTOP, RETAILER_MOBILE],
    )


class FlowFileError(Exception):
    pass


def load_plan(path: Path) -> FlowPlan:
    """Read and validate a JSON flow file."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise FlowFileError(f"Cannot read flow file {path}: {e}") from e
    try:
        return FlowPlan.model_validate(raw)
    except ValidationError as e:
        raise FlowFileError(f"Invalid flow file {path}:\n{e}") from e


def describe_plan(plan: FlowPlan) -> List[str]:
    lines = []
    for flow in plan.flows:
        role = flow.role.value if flow.role else "anonymous"
        viewport = plan.viewport_for(flow)
        lines.append(
            f"{flow.name}: {flow.title} [{role}, {viewport.label} {viewport.width}x{viewport.height}, "
            f"{len(flow.capture_names())} captures]"
        )
    return lines
