"""
khidmaty/services/payments.py - Subscription plans and checkout transactions.

There is no card processing here: `create_transaction` records a pending
`transactions/{id}` document with a checkout URL, and the owner console (or
a PSP webhook bridge) confirms it with `mark_transaction_paid`, which upgrades
the user's plan atomically and re-approves services that were demoted while
the account was locked to the pricing page.
"""
import logging
from typing import Any, Dict, List, Optional

from google.cloud import firestore as gcf

from khidmaty.config import db
from khidmaty.core.constants import WRITE_BATCH_SIZE
from khidmaty.utils import firestore_helpers

logger = logging.getLogger("khidmaty.payments")

PLANS: List[Dict[str, Any]] = [
    {
        "id": "basic",
        "nameKey": "plans.basic",
        "price": 29,
        "currency": "USD",
        "perKey": "pages.pricing.perMonth",
        "featuresKeys": ["pages.pricing.features.basic.l1", "pages.pricing.features.basic.l2"],
        "recommended": False,
    },
    {
        "id": "pro",
        "nameKey": "plans.pro",
        "price": 79,
        "currency": "USD",
        "perKey": "pages.pricing.perMonth",
        "featuresKeys": [
            "pages.pricing.features.pro.l1",
            "pages.pricing.features.pro.l2",
            "pages.pricing.features.pro.l3",
            "pages.pricing.features.pro.l4",
        ],
        "recommended": True,
    },
    {
        "id": "enterprise",
        "nameKey": "plans.enterprise",
        "price": 149,
        "currency": "USD",
        "perKey": "pages.pricing.perMonth",
        "featuresKeys": [
            "pages.pricing.features.enterprise.l1",
            "pages.pricing.features.enterprise.l2",
            "pages.pricing.features.enterprise.l3",
            "pages.pricing.features.enterprise.l4",
        ],
        "recommended": False,
    },
]
PAYMENT_PROVIDERS = ("mock", "fawri", "aman")


def get_plan(plan_id: str) -> Optional[Dict[str, Any]]:
    return next((p for p in PLANS if p["id"] == plan_id), None)


def create_transaction(uid: str, plan_id: str, provider: str, origin: str) -> Dict[str, str]:
    plan = get_plan(plan_id)
    if plan is None:
        raise ValueError("INVALID_PLAN")
    if provider not in PAYMENT_PROVIDERS:
        raise ValueError("INVALID_PROVIDER")

    ref = db.collection("transactions").document()
    checkout_url = f"{origin.rstrip('/')}/checkout/{ref.id}"
    ref.set({
        "uid": uid,
        "planId": plan_id,
        "amount": plan["price"],
        "currency": plan["currency"],
        "provider": provider,
        "status": "pending",
        "createdAt": gcf.SERVER_TIMESTAMP,
        "checkoutUrl": checkout_url,
    }, merge=True)
    return {"id": ref.id, "checkoutUrl": checkout_url}


def get_transaction(tx_id: str) -> Optional[Dict[str, Any]]:
    snap = db.collection("transactions").document(tx_id).get()
    if not snap.exists:
        return None
    return {"id": snap.id, **(snap.to_dict() or {})}


def reapprove_demoted_services(uid: str, approver_uid: Optional[str]) -> int:
    docs = db.collection("services").where("providerId", "==", uid).where("status", "==", "pending").limit(1000).stream()
    refs = [d.reference for d in docs if (d.to_dict() or {}).get("demotedForLock") is True]
    return firestore_helpers.update_refs(refs, {
        "status": "approved",
        "demotedForLock": None,
        "approvedAt": gcf.SERVER_TIMESTAMP,
        "approvedBy": approver_uid or "system",
    }, WRITE_BATCH_SIZE)


def mark_transaction_paid(tx_id: str, approver_uid: Optional[str] = None) -> Dict[str, Any]:
    """Raises ValueError: TX_NOT_FOUND, USER_NOT_FOUND."""
    tx_ref = db.collection("transactions").document(tx_id)
    snap = tx_ref.get()
    if not snap.exists:
        raise ValueError("TX_NOT_FOUND")
    tx = snap.to_dict() or {}
    if tx.get("status") == "success":
        return {"ok": True, "already": True}

    user_ref = db.collection("users").document(str(tx.get("uid")))

    def _apply(transaction):
        user_snap = user_ref.get(transaction=transaction)
        if not user_snap.exists:
            raise ValueError("USER_NOT_FOUND")
        transaction.update(tx_ref, {
            "status": "success",
            "paidAt": gcf.SERVER_TIMESTAMP,
            "approvedBy": approver_uid or None,
        })
        transaction.update(user_ref, {"plan": tx.get("planId"), "pricingGate.mode": None})

    firestore_helpers.run_transaction(_apply)

    try:
        restored = reapprove_demoted_services(str(tx.get("uid")), approver_uid)
    except Exception:
        logger.warning("re-approving demoted services failed for tx %s", tx_id, exc_info=True)
        restored = 0
    logger.info("transaction %s confirmed, plan %s, %d services restored", tx_id, tx.get("planId"), restored)
    return {"ok": True, "restoredServices": restored}
