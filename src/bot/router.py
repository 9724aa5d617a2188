"""Bot router composition."""

from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command, CommandStart

from src.bot.handlers import (
    handle_confirm,
    handle_domains,
    handle_examples,
    handle_help,
    handle_message,
)

router = Router(name="root")
router.message.register(handle_help, CommandStart())
router.message.register(handle_help, Command("help"))
router.message.register(handle_confirm, Command("confirm"))
router.message.register(handle_domains, Command("domains"))
router.message.register(handle_examples, Command("examples"))
router.message.register(handle_message)
