"""Team-facing notes and mention targeting for factory events."""

from __future__ import annotations

from typing import Iterable
from uuid import UUID

from .factory_grammar import FactoryAction, ParsedEvent


ACTION_MENTION_ROLES: dict[FactoryAction, tuple[str, ...]] = {
    FactoryAction.CONFIRMED: ("purchase_manager",),
    FactoryAction.PRODUCTION_START: ("project_manager",),
    FactoryAction.PRODUCTION_COMPLETE: ("quality_team", "logistics"),
    FactoryAction.QC_PASS: ("logistics", "customer_service"),
    FactoryAction.QC_FAIL: ("quality_team", "production_manager", "project_manager"),
    FactoryAction.SHIPPED: ("logistics", "customer_service"),
    FactoryAction.DELAY: ("project_manager", "customer_service", "sales_manager"),
}


def format_event_note(event: ParsedEvent, *, supplier_name: str) -> str:
    """Chinese markdown summary shown on the order's activity feed."""
    po = event.po_number
    action = event.action

    if action == FactoryAction.CONFIRMED:
        return f"🏭 **工厂确认** - {supplier_name}\n\n订单 `{po}` 已确认接收。"
    if action == FactoryAction.PRODUCTION_START:
        return f"🔧 **开始生产** - {supplier_name}\n\n订单 `{po}` 已开始生产。"
    if action == FactoryAction.PRODUCTION_COMPLETE:
        return f"✅ **生产完成** - {supplier_name}\n\n订单 `{po}` 生产已完成，等待质检。"
    if action == FactoryAction.QC_PASS:
        return f"✅ **质检通过** - {supplier_name}\n\n订单 `{po}` 质检通过，可以发货。"
    if action == FactoryAction.QC_FAIL:
        reason = f"\n原因: {event.reason}" if event.reason else ""
        return f"❌ **质检失败** - {supplier_name}\n\n订单 `{po}` 质检未通过。{reason}"
    if action == FactoryAction.SHIPPED:
        tracking = f"\n运单号: {event.tracking_number}" if event.tracking_number else ""
        return f"🚚 **已发货** - {supplier_name}\n\n订单 `{po}` 已发货。{tracking}"
    if action == FactoryAction.DELAY:
        reason = f"\n原因: {event.reason}" if event.reason else ""
        return f"⚠️ **生产延期** - {supplier_name}\n\n订单 `{po}` 延期 {event.days} 天。{reason}"
    return f"📩 工厂消息 - {supplier_name}: {action.value}"


def notification_title(event: ParsedEvent) -> str:
    return f"工厂消息: {event.action.value}"


def resolve_mentions(event: ParsedEvent, team_members: Iterable) -> list[UUID]:
    """Active members of the order's team whose role is alerted for this action."""
    roles = set(ACTION_MENTION_ROLES.get(event.action, ()))
    if not roles:
        return []
    mentions: list[UUID] = []
    for member in team_members:
        if member.role in roles and member.is_active is not False and member.id not in mentions:
            mentions.append(member.id)
    return mentions
