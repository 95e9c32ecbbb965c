"""aiogram FSM states."""
