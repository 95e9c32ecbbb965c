"""Inline keyboard builders for the bike registration flow."""

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from bike_registration.workflow import ActiveField


def serial_number_keyboard(can_advance: bool, failed: bool) -> InlineKeyboardMarkup | None:
    """Retry after a failed lookup; Next when the serial is already verified."""
    buttons = []
    if failed:
        buttons.append([InlineKeyboardButton(text="🔄 Try Again", callback_data="reg_verify")])
    if can_advance:
        buttons.append([InlineKeyboardButton(text="➡️ Next", callback_data="reg_next")])
    return InlineKeyboardMarkup(inline_keyboard=buttons) if buttons else None


def bike_information_keyboard(can_advance: bool) -> InlineKeyboardMarkup:
    buttons = []
    if can_advance:
        buttons.append([InlineKeyboardButton(text="➡️ Next", callback_data="reg_next")])
    buttons.append([InlineKeyboardButton(text="❌ This is not my bike", callback_data="reg_prev")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def personal_information_keyboard(fields: list[ActiveField], can_submit: bool) -> InlineKeyboardMarkup:
    """One button per field (✅ filled / ✏️ needs attention), then navigation."""
    buttons = []
    for f in fields:
        if isinstance(f.value, bool):
            mark = "☑️" if f.value else "⬜"
        else:
            mark = "⚠️" if f.error else "✅"
        buttons.append([
            InlineKeyboardButton(text=f"{mark} {f.label}", callback_data=f"reg_edit_{f.name}")
        ])

    nav = [InlineKeyboardButton(text="⬅️ Previous", callback_data="reg_prev")]
    if can_submit:
        nav.append(InlineKeyboardButton(text="✅ Submit", callback_data="reg_submit"))
    buttons.append(nav)
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def options_keyboard(name: str, options: dict[str, str]) -> InlineKeyboardMarkup:
    """Option picker for select / radio fields."""
    buttons = [
        [InlineKeyboardButton(text=label, callback_data=f"reg_set_{name}:{value}")]
        for value, label in options.items()
    ]
    buttons.append([InlineKeyboardButton(text="↩️ Back", callback_data="reg_show")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def confirmation_keyboard(success: bool) -> InlineKeyboardMarkup:
    buttons = []
    if not success:
        buttons.append([InlineKeyboardButton(text="⬅️ Back to my details", callback_data="reg_prev")])
    buttons.append([InlineKeyboardButton(text="🔁 Register another bike", callback_data="reg_restart")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)
