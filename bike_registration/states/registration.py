"""FSM states for the bike registration flow — one state per workflow step."""

from aiogram.fsm.state import StatesGroup, State


class RegistrationFlow(StatesGroup):
    """Bike registration state machine — 4 steps."""
    serial_number = State()
    bike_information = State()
    personal_information = State()
    confirmation = State()


# Workflow step index → chat state
STEP_STATES = {
    0: RegistrationFlow.serial_number,
    1: RegistrationFlow.bike_information,
    2: RegistrationFlow.personal_information,
    3: RegistrationFlow.confirmation,
}
