"""Markdown templates for messages pushed to a factory's WeCom group.

Factories work in Chinese, so every template renders Chinese markdown. Each
template is a pure function of (supplier name, context, today).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Mapping


class MessageKind(str, Enum):
    TEST = "test"
    PO_CREATED = "po_created"
    PO_UPDATED = "po_updated"
    PAYMENT_SENT = "payment_sent"
    DOCUMENT_SHARED = "document_shared"
    GENERAL = "general"
    PRODUCTION_REMINDER = "production_reminder"
    PRODUCTION_START_REMINDER = "production_start_reminder"
    PRODUCTION_PROGRESS_CHECK = "production_progress_check"
    PRODUCTION_DEADLINE_WARNING = "production_deadline_warning"
    PRODUCTION_OVERDUE = "production_overdue"
    QC_SCHEDULED = "qc_scheduled"
    SHIPPING_REMINDER = "shipping_reminder"
    REQUEST_SHIPPING_DOCS = "request_shipping_docs"


Context = Mapping[str, Any]
Template = Callable[[str, Context, date], str]

DEFAULT_CURRENCY = "CNY"
GENERAL_FALLBACK = "您好，请查看最新消息。"

REPLY_FORMAT_HELP = (
    "**回复格式说明:**\n"
    "• `CONFIRMED PO-xxx` - 确认订单\n"
    "• `PRODUCTION_START PO-xxx` - 开始生产\n"
    "• `PRODUCTION_COMPLETE PO-xxx` - 生产完成\n"
    "• `QC_PASS PO-xxx` - 质检通过\n"
    "• `QC_FAIL PO-xxx [原因]` - 质检失败\n"
    "• `SHIPPED PO-xxx [运单号]` - 已发货\n"
    "• `DELAY PO-xxx [天数] [原因]` - 生产延期"
)

PAYMENT_TYPE_LABELS: dict[str, str] = {
    "deposit": "定金",
    "balance": "尾款",
}


def format_amount(amount: Any, currency: str | None = None) -> str:
    """`USD 5,000.00`; missing or unparsable amounts render as zero."""
    code = currency or DEFAULT_CURRENCY
    try:
        value = Decimal(str(amount)) if amount not in (None, "") else Decimal("0")
    except (InvalidOperation, ValueError):
        value = Decimal("0")
    return f"{code} {value:,.2f}"


def format_today(today: date) -> str:
    return f"{today.year}/{today.month}/{today.day}"


def _po(ctx: Context) -> str:
    return str(ctx.get("po_number") or "-")


def _or(ctx: Context, key: str, default: str) -> str:
    value = ctx.get(key)
    if value in (None, ""):
        return default
    return str(value)


def render_test(supplier_name: str, ctx: Context, today: date) -> str:
    return (
        f"### 🔗 连接测试 - Trade Entrust\n\n"
        f"**供应商:** {supplier_name}\n"
        f"**测试时间:** {format_today(today)}\n\n"
        f"✅ 连接成功！您的企业微信已与 Trade Entrust ERP 系统对接。\n\n"
        f"---\n{REPLY_FORMAT_HELP}"
    )


def _item_lines(items: Any) -> str:
    if not items:
        return "详见附件"
    lines = []
    for index, item in enumerate(items, start=1):
        name = item.get("product_name_cn") or item.get("product_name")
        lines.append(f"{index}. {name} x {item.get('quantity')} @ ¥{item.get('unit_price')}")
    return "\n".join(lines)


def render_po_created(supplier_name: str, ctx: Context, today: date) -> str:
    order = ctx.get("order") or {}
    notes = ctx.get("notes")
    notes_block = f"**备注:** {notes}\n\n" if notes else ""
    return (
        f"### 🛒 新采购订单 - {supplier_name}\n\n"
        f"**订单号:** `{ctx.get('po_number')}`\n"
        f"**项目:** {order.get('project_title') or '未指定'}\n"
        f"**客户订单:** {order.get('order_number') or '-'}\n"
        f"**总金额:** {format_amount(ctx.get('total_value'), ctx.get('currency'))}\n"
        f"**交货日期:** {_or(ctx, 'delivery_date', '待定')}\n"
        f"**付款条款:** {_or(ctx, 'payment_terms', '待定')}\n\n"
        f"**产品明细:**\n{_item_lines(ctx.get('items'))}\n\n"
        f"{notes_block}"
        f"---\n**请回复确认:**\n`CONFIRMED {ctx.get('po_number')}`"
    )


def render_po_updated(supplier_name: str, ctx: Context, today: date) -> str:
    return (
        f"### 📝 订单变更通知 - {supplier_name}\n\n"
        f"**订单号:** `{ctx.get('po_number')}`\n"
        f"**更新时间:** {format_today(today)}\n\n"
        f"订单信息已更新，请查看最新订单详情。\n\n"
        f"**如有疑问请回复此消息。**"
    )


def render_payment_sent(supplier_name: str, ctx: Context, today: date) -> str:
    receipt_url = ctx.get("receipt_url")
    receipt_link = f"\n\n📎 **[点击查看付款凭证]({receipt_url})**" if receipt_url else ""
    payment_label = PAYMENT_TYPE_LABELS.get(str(ctx.get("payment_type") or ""), "付款")
    purpose = ctx.get("payment_purpose")
    purpose_line = f"**付款用途:** {purpose}\n" if purpose else ""
    return (
        f"### 💰 付款通知 - {supplier_name}\n\n"
        f"**订单号:** `{_po(ctx)}`\n"
        f"**付款金额:** {format_amount(ctx.get('amount'), ctx.get('currency'))}\n"
        f"**付款类型:** {payment_label}\n"
        f"{purpose_line}"
        f"**付款时间:** {format_today(today)}\n\n"
        f"请查收并确认。{receipt_link}\n\n"
        f"---\n**回复确认:** `PAYMENT_RECEIVED {ctx.get('po_number')}`"
    )


def render_document_shared(supplier_name: str, ctx: Context, today: date) -> str:
    return (
        f"### 📄 文件分享 - {supplier_name}\n\n"
        f"**文件名:** {_or(ctx, 'file_name', '文件')}\n"
        f"**类型:** {_or(ctx, 'document_type', '文档')}\n"
        f"**订单号:** `{_po(ctx)}`\n\n"
        f"请查收附件。"
    )


def render_production_reminder(supplier_name: str, ctx: Context, today: date) -> str:
    return (
        f"### 📢 订单确认提醒 - Trade Entrust\n\n"
        f"**订单号:** `{_po(ctx)}`\n"
        f"**发送时间:** {ctx.get('days_since_created') or 0}天前\n"
        f"**订单金额:** {format_amount(ctx.get('total_value'), ctx.get('currency'))}\n\n"
        f"您尚未确认此订单，请尽快回复确认。\n\n"
        f"---\n**请回复:** `CONFIRMED {ctx.get('po_number')}`"
    )


def render_production_start_reminder(supplier_name: str, ctx: Context, today: date) -> str:
    return (
        f"### 🏭 生产开始提醒 - Trade Entrust\n\n"
        f"**订单号:** `{_po(ctx)}`\n"
        f"**订单金额:** {format_amount(ctx.get('total_value'), ctx.get('currency'))}\n"
        f"**交货日期:** {_or(ctx, 'delivery_date', '待定')}\n\n"
        f"订单已确认，请开始生产并回复。\n\n"
        f"---\n**请回复:** `PRODUCTION_START {ctx.get('po_number')}`"
    )


def render_production_progress_check(supplier_name: str, ctx: Context, today: date) -> str:
    return (
        f"### 📊 生产进度查询 - Trade Entrust\n\n"
        f"**订单号:** `{_po(ctx)}`\n"
        f"**生产天数:** {ctx.get('days_in_production') or 0}天\n"
        f"**交货日期:** {_or(ctx, 'delivery_date', '待定')}\n\n"
        f"请更新生产进度:\n• 已完成百分比\n• 预计完成日期\n• 是否有问题\n\n"
        f"---\n**完成后请回复:** `PRODUCTION_COMPLETE {ctx.get('po_number')}`"
    )


def render_production_deadline_warning(supplier_name: str, ctx: Context, today: date) -> str:
    return (
        f"### ⚠️ 交期临近提醒 - Trade Entrust\n\n"
        f"**订单号:** `{_po(ctx)}`\n"
        f"**交货日期:** {ctx.get('delivery_date')}\n"
        f"**剩余天数:** {ctx.get('days_remaining') or 0}天\n\n"
        f"请确认能否按时交货。如有延期风险，请立即回复。\n\n"
        f"---\n**回复格式:**\n"
        f"• `DELAY {ctx.get('po_number')} [天数] [原因]` - 延期"
    )


def render_production_overdue(supplier_name: str, ctx: Context, today: date) -> str:
    return (
        f"### 🚨 紧急 - 订单已超期！\n\n"
        f"**订单号:** `{_po(ctx)}`\n"
        f"**原定交期:** {ctx.get('delivery_date')}\n"
        f"**已超期:** {ctx.get('days_overdue') or 0}天\n\n"
        f"请立即回复生产状态和新的预计交货日期！\n\n"
        f"---\n**请回复:** `DELAY {ctx.get('po_number')} [天数] [原因]`"
    )


def render_qc_scheduled(supplier_name: str, ctx: Context, today: date) -> str:
    return (
        f"### 📋 质检安排通知 - Trade Entrust\n\n"
        f"**订单号:** `{_po(ctx)}`\n"
        f"**质检日期:** {_or(ctx, 'inspection_date', '待定')}\n"
        f"**质检类型:** {_or(ctx, 'inspection_type', '成品检验')}\n"
        f"**检验员:** {_or(ctx, 'inspector', '待定')}\n\n"
        f"请做好质检准备工作。"
    )


def render_shipping_reminder(supplier_name: str, ctx: Context, today: date) -> str:
    return (
        f"### 🚚 发货提醒 - Trade Entrust\n\n"
        f"**订单号:** `{_po(ctx)}`\n"
        f"**质检状态:** {_or(ctx, 'qc_status', '已通过')}\n\n"
        f"生产已完成，请尽快安排发货。\n\n"
        f"---\n**发货后请回复:** `SHIPPED {ctx.get('po_number')} [运单号]`"
    )


def render_request_shipping_docs(supplier_name: str, ctx: Context, today: date) -> str:
    return (
        f"### 📄 请提供发货文件 - Trade Entrust\n\n"
        f"**订单号:** `{_po(ctx)}`\n\n"
        f"请提供以下文件:\n"
        f"• 装箱单 (Packing List)\n"
        f"• 商业发票 (Commercial Invoice)\n"
        f"• 运单/提单 (B/L)\n\n"
        f"可直接发送图片或PDF文件。"
    )


def render_general(supplier_name: str, ctx: Context, today: date) -> str:
    return str(ctx.get("content") or GENERAL_FALLBACK)


TEMPLATES: dict[MessageKind, Template] = {
    MessageKind.TEST: render_test,
    MessageKind.PO_CREATED: render_po_created,
    MessageKind.PO_UPDATED: render_po_updated,
    MessageKind.PAYMENT_SENT: render_payment_sent,
    MessageKind.DOCUMENT_SHARED: render_document_shared,
    MessageKind.GENERAL: render_general,
    MessageKind.PRODUCTION_REMINDER: render_production_reminder,
    MessageKind.PRODUCTION_START_REMINDER: render_production_start_reminder,
    MessageKind.PRODUCTION_PROGRESS_CHECK: render_production_progress_check,
    MessageKind.PRODUCTION_DEADLINE_WARNING: render_production_deadline_warning,
    MessageKind.PRODUCTION_OVERDUE: render_production_overdue,
    MessageKind.QC_SCHEDULED: render_qc_scheduled,
    MessageKind.SHIPPING_REMINDER: render_shipping_reminder,
    MessageKind.REQUEST_SHIPPING_DOCS: render_request_shipping_docs,
}


def render_message(
    kind: MessageKind | str,
    *,
    supplier_name: str,
    context: Context | None = None,
    today: date | None = None,
) -> str:
    """Render the template for `kind`. Unknown kinds fall back to pass-through content."""
    try:
        template = TEMPLATES[MessageKind(kind)]
    except ValueError:
        template = render_general
    return template(supplier_name, context or {}, today or date.today())
