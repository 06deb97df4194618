from typing import Dict, List

from ..models import HelpItem, Intent, IntentKind

SUGGESTIONS: Dict[IntentKind, List[str]] = {
    IntentKind.ORDER_STATUS: ["Track shipping ETA", "This seems wrong → escalate", "Anything else?"],
    IntentKind.SHIPPING_ETA: ["Remind me if delayed", "Change delivery address", "Talk to a human"],
    IntentKind.RETURN_POLICY: ["Start a return", "Refund timeline", "Anything else?"],
    IntentKind.REFUND_POLICY: ["Check return status", "Payment method changes", "Talk to a human"],
    IntentKind.ACCOUNT_HELP: ["Reset password", "Change email", "Close account"],
    IntentKind.ESCALATE: ["Yes, connect me", "No, continue here", "Anything else?"],
}
DEFAULT_SUGGESTIONS: List[str] = ["Track an order", "Returns & refunds", "Talk to a human"]
TICKET_SUGGESTIONS: List[str] = ["Add more details", "Update my email", "Anything else?"]

HELP_ITEMS: Dict[IntentKind, List[HelpItem]] = {
    IntentKind.ORDER_STATUS: [
        HelpItem("Find your order ID", "Check your confirmation email or My Orders page."),
        HelpItem("Tracking not updating", "Carriers may take 24–48h to refresh scans."),
    ],
    IntentKind.SHIPPING_ETA: [
        HelpItem("ETA basics", "ETAs are estimates; weather and customs can add delays."),
        HelpItem("Signature required", "Some high-value orders require a signature on delivery."),
    ],
    IntentKind.RETURN_POLICY: [
        HelpItem("Return window", "30 days from delivery for most items."),
        HelpItem("Exceptions", "Final-sale and perishable goods are not returnable."),
    ],
    IntentKind.REFUND_POLICY: [
        HelpItem("Refund timeline", "5–7 business days after we receive your return."),
        HelpItem("Store credit", "Choose instant store credit at return start for faster repurchase."),
    ],
    IntentKind.ACCOUNT_HELP: [
        HelpItem("Reset password", "Use Forgot Password; check spam if email doesn't arrive."),
        HelpItem("Change email", "Update in Account Settings > Security."),
    ],
}
DEFAULT_HELP_ITEMS: List[HelpItem] = [
    HelpItem("Popular topics", "Order tracking, returns, refunds, and account help."),
    HelpItem("Contact us", "If you need a human, say 'talk to a human'."),
]


def suggestions_for(intent: Intent) -> List[str]:
    """Three quick-reply prompts for the last resolved intent."""
    return list(SUGGESTIONS.get(intent.kind, DEFAULT_SUGGESTIONS))


def help_items_for(intent: Intent) -> List[HelpItem]:
    """Static help-panel content keyed by the last resolved intent."""
    return list(HELP_ITEMS.get(intent.kind, DEFAULT_HELP_ITEMS))
