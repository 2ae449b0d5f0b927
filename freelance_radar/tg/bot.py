from __future__ import annotations

from aiogram import Bot


def create_bot(token: str) -> Bot:
    # Alerts are plain text: no parse mode, so splitting can never break markup.
    return Bot(token=token)
