"""
Bike Registration Bot Handler — chat front-end for the registration workflow.

Flow:
  1. Serial Number (verified against the backend) → 2. Bike Information
  → 3. Personal Information → Submit → 4. Confirmation

All gating lives in RegistrationWorkflow; handlers only translate chat input
into workflow calls and render the current step.
"""

import html
import logging
from datetime import datetime

from aiogram import Router, F
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, InlineKeyboardMarkup, Message

from bike_registration.keyboards.registration_kb import (
    bike_information_keyboard,
    confirmation_keyboard,
    options_keyboard,
    personal_information_keyboard,
    serial_number_keyboard,
)
from bike_registration.states.registration import STEP_STATES, RegistrationFlow
from bike_registration.workflow import (
    InvalidFieldValueError,
    OperationStatus,
    RegistrationWorkflow,
    WorkflowError,
)

router = Router()
logger = logging.getLogger(__name__)

# chat id → workflow; in-memory only, lost on restart.
# Least recently used chats are dropped beyond MAX_WORKFLOWS.
_workflows: dict[int, RegistrationWorkflow] = {}
MAX_WORKFLOWS = 1000

DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%d/%m/%Y")
TEXT_FIELDS = ("first_name", "last_name", "email", "date_of_birth")
FIELD_PROMPTS = {
    "first_name": "Enter your <b>first name</b> (e.g. John):",
    "last_name": "Enter your <b>last name</b> (e.g. Doe):",
    "email": "Enter your <b>email</b> (e.g. john@example.com):",
    "date_of_birth": "Enter your <b>date of birth</b> (YYYY-MM-DD or DD.MM.YYYY):",
}


def get_workflow(chat_id: int) -> RegistrationWorkflow:
    workflow = _workflows.pop(chat_id, None)
    if workflow is None:
        workflow = RegistrationWorkflow()
        if len(_workflows) >= MAX_WORKFLOWS:
            oldest = next(iter(_workflows))
            logger.info("Dropping registration of idle chat %s", oldest)
            del _workflows[oldest]
    # re-insert so dict order tracks recent use
    _workflows[chat_id] = workflow
    return workflow


def parse_date(text: str) -> str:
    """Normalise the accepted date spellings to ISO; unknown input passes through."""
    text = text.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    return text


def _fmt(value) -> str:
    if value is None or value == "":
        return "—"
    return html.escape(str(value))


# ── Rendering ─────────────────────────────────────────────

def render_step(workflow: RegistrationWorkflow) -> tuple[str, InlineKeyboardMarkup | None]:
    """Text and keyboard for the workflow's current step."""
    step = workflow.current_step
    header = f"<b>Step {step.index + 1}/{len(STEP_STATES)}: {step.title}</b>\n\n"

    if step.key == "serial_number":
        error = workflow.errors.get("serial_number")
        kb = serial_number_keyboard(workflow.can_advance(), failed=bool(error))
        if error:
            return (
                header + f"⚠️ {html.escape(error)}\n\nPlease check and send your serial number again.",
                kb,
            )
        return (
            header
            + "Register your bike to extend your warranty by 2 years, in addition to "
            "the 3-year standard coverage.\n\n"
            "Enter your bike <b>Serial Number</b>:",
            kb,
        )

    if step.key == "bike_information":
        lines = [header]
        for f in workflow.get_active_step_fields():
            lines.append(f"<b>{f.label}:</b> {_fmt(f.value)}")
            if f.error and f.value is not None:
                lines.append(f"⚠️ {html.escape(f.error)}")
        lines.append("")
        if workflow.record.date_of_purchase is None:
            lines.append("Enter your <b>date of purchase</b> (YYYY-MM-DD or DD.MM.YYYY):")
        return "\n".join(lines), bike_information_keyboard(workflow.can_advance())

    if step.key == "personal_information":
        fields = workflow.get_active_step_fields()
        lines = [header]
        for f in fields:
            value = f.options.get(f.value, f.value) if f.options else f.value
            if isinstance(value, bool):
                value = "Yes" if value else "No"
            lines.append(f"<b>{f.label}:</b> {_fmt(value)}")
        if workflow.submission.state.is_pending:
            lines.append("\n⏳ Submitting your registration...")
        elif not workflow.can_advance():
            lines.append("\nTap a field to fill it in. Submit unlocks once everything is valid.")
        return "\n".join(lines), personal_information_keyboard(fields, workflow.can_advance())

    confirmation = workflow.confirmation
    if confirmation is not None and confirmation.success:
        text = (
            header
            + "🎉 <b>Registration Complete!</b>\n\n"
            + html.escape(confirmation.message or "Your bike has been registered.")
        )
        if confirmation.registration_id:
            text += f"\n\nRegistration ID: <code>{html.escape(confirmation.registration_id)}</code>"
        return text, confirmation_keyboard(True)
    message = confirmation.message if confirmation else "Registration failed. Please try again."
    return (
        header + "⚠️ <b>Registration Failed</b>\n\n" + html.escape(message),
        confirmation_keyboard(False),
    )


async def _show(target, workflow: RegistrationWorkflow, state: FSMContext, edit: bool = False):
    await state.set_state(STEP_STATES[workflow.stepper.current])
    text, kb = render_step(workflow)
    if edit and hasattr(target, "edit_text"):
        await target.edit_text(text, reply_markup=kb)
    else:
        await target.answer(text, reply_markup=kb)


# ── Entry Point: /register ────────────────────────────────

@router.message(Command("register"))
async def start_registration(message: Message, state: FSMContext):
    """Start (or restart) the registration for this chat."""
    workflow = get_workflow(message.chat.id)
    workflow.reset()
    await state.clear()
    await _show(message, workflow, state)


@router.callback_query(F.data == "reg_restart")
async def restart_registration(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    workflow = get_workflow(callback.message.chat.id)
    workflow.reset()
    await state.clear()
    await _show(callback.message, workflow, state, edit=True)


# ── Step 1: Serial Number ─────────────────────────────────

async def _verify(message: Message, workflow: RegistrationWorkflow, state: FSMContext):
    if workflow.verification.state.is_pending:
        await message.answer("⏳ Still looking up your bike...")
        return
    if not workflow.can_verify():
        await message.answer("⚠️ Please enter your bike serial number.")
        return
    await message.answer("🔍 Looking up your bike...")
    result = await workflow.trigger_verification()
    if result.status is OperationStatus.SUCCEEDED:
        logger.info("Chat %s verified serial %s", message.chat.id, workflow.record.serial_number)
    await _show(message, workflow, state)


@router.message(RegistrationFlow.serial_number)
async def process_serial_number(message: Message, state: FSMContext):
    workflow = get_workflow(message.chat.id)
    if workflow.verification.state.is_pending:
        # Keep the serial being looked up; the user can resend once it resolves
        await message.answer("⏳ Still looking up your bike...")
        return
    workflow.update_field("serial_number", (message.text or "").strip())
    await _verify(message, workflow, state)


@router.callback_query(F.data == "reg_verify")
async def retry_verification(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    workflow = get_workflow(callback.message.chat.id)
    await _verify(callback.message, workflow, state)


# ── Step 2: Bike Information ─────────────────────────────

@router.message(RegistrationFlow.bike_information)
async def process_date_of_purchase(message: Message, state: FSMContext):
    workflow = get_workflow(message.chat.id)
    try:
        workflow.update_field("date_of_purchase", parse_date(message.text or ""))
    except InvalidFieldValueError:
        await message.answer("⚠️ Invalid date. Please use YYYY-MM-DD, e.g. 2024-05-01")
        return
    await _show(message, workflow, state)


# ── Step 3: Personal Information ─────────────────────────

@router.callback_query(F.data.startswith("reg_edit_"), RegistrationFlow.personal_information)
async def edit_personal_field(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    name = callback.data.replace("reg_edit_", "")
    workflow = get_workflow(callback.message.chat.id)
    field = next((f for f in workflow.get_active_step_fields() if f.name == name), None)
    if field is None:
        return

    if field.options:
        await callback.message.edit_text(
            f"Select your <b>{field.label.lower()}</b>:",
            reply_markup=options_keyboard(name, field.options),
        )
    elif isinstance(field.value, bool):
        workflow.update_field(name, not field.value)
        await _show(callback.message, workflow, state, edit=True)
    else:
        await state.update_data(editing=name)
        await callback.message.answer(FIELD_PROMPTS[name])


@router.callback_query(F.data.startswith("reg_set_"), RegistrationFlow.personal_information)
async def set_option_field(callback: CallbackQuery, state: FSMContext):
    name, _, value = callback.data.replace("reg_set_", "").partition(":")
    workflow = get_workflow(callback.message.chat.id)
    try:
        workflow.update_field(name, value)
    except WorkflowError as e:
        logger.warning("Chat %s sent bad option %r: %s", callback.message.chat.id, callback.data, e)
        await callback.answer("This option is not available.", show_alert=True)
        return
    await callback.answer()
    await _show(callback.message, workflow, state, edit=True)


@router.callback_query(F.data == "reg_show")
async def show_current_step(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    await _show(callback.message, get_workflow(callback.message.chat.id), state, edit=True)


@router.message(RegistrationFlow.personal_information)
async def process_personal_text(message: Message, state: FSMContext):
    """Fill the field picked with a button, or the first text field still missing."""
    workflow = get_workflow(message.chat.id)
    data = await state.get_data()
    name = data.get("editing") or next(
        (n for n in TEXT_FIELDS if n in workflow.errors), None
    )
    if name is None:
        await message.answer("Tap a field below to change it.")
        await _show(message, workflow, state)
        return

    text = (message.text or "").strip()
    if name == "date_of_birth":
        text = parse_date(text)
    try:
        workflow.update_field(name, text)
    except InvalidFieldValueError:
        await message.answer("⚠️ Invalid value. " + FIELD_PROMPTS[name])
        return

    await state.update_data(editing=None)
    error = workflow.errors.get(name)
    if error:
        await message.answer(f"⚠️ {html.escape(error)}")
    await _show(message, workflow, state)


@router.callback_query(F.data == "reg_submit", RegistrationFlow.personal_information)
async def submit_registration(callback: CallbackQuery, state: FSMContext):
    workflow = get_workflow(callback.message.chat.id)
    if workflow.submission.state.is_pending:
        await callback.answer("Already submitting...")
        return
    await callback.answer("Submitting...")
    await workflow.trigger_submission()
    await _show(callback.message, workflow, state, edit=True)


# ── Navigation ────────────────────────────────────────────

@router.callback_query(F.data == "reg_next")
async def go_next(callback: CallbackQuery, state: FSMContext):
    workflow = get_workflow(callback.message.chat.id)
    if not workflow.next():
        await callback.answer("Please complete this step first.", show_alert=True)
        return
    await callback.answer()
    await _show(callback.message, workflow, state, edit=True)


@router.callback_query(F.data == "reg_prev")
async def go_prev(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    workflow = get_workflow(callback.message.chat.id)
    workflow.prev()
    await state.update_data(editing=None)
    await _show(callback.message, workflow, state, edit=True)
