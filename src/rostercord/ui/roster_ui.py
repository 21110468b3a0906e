"""
Persistent button views for the clock station and the roster summary.

Both views use fixed custom ids and no timeout so that, once registered
with ``bot.add_view``, buttons on messages pinned before a restart keep
working. Button presses are forwarded to a handler (the roster cog).
"""

from __future__ import annotations

from typing import Mapping, Protocol

import discord

from rostercord.datatypes.roster_datatypes import CLEAR_PREFERENCES_TAG

CLOCK_IN_ID = "clock_in"
CLOCK_OUT_ID = "clock_out"
PREFERENCE_ID_PREFIX = "pref:"

# Discord allows five buttons per row
_BUTTONS_PER_ROW = 5


def preference_custom_id(tag: str) -> str:
    return f"{PREFERENCE_ID_PREFIX}{tag}"


class RosterInteractionHandler(Protocol):
    async def handle_clock_in(self, interaction: discord.Interaction) -> None: ...

    async def handle_clock_out(self, interaction: discord.Interaction) -> None: ...

    async def handle_preference(self, interaction: discord.Interaction, tag: str) -> None: ...


class ClockInButton(discord.ui.Button):
    def __init__(self, handler: RosterInteractionHandler, *, label: str = "🕐 Clock In", row: int = 0):
        super().__init__(label=label, style=discord.ButtonStyle.success, custom_id=CLOCK_IN_ID, row=row)
        self.handler = handler

    async def callback(self, interaction: discord.Interaction) -> None:
        await self.handler.handle_clock_in(interaction)


class ClockOutButton(discord.ui.Button):
    def __init__(self, handler: RosterInteractionHandler, *, label: str = "🕒 Clock Out", row: int = 0):
        super().__init__(label=label, style=discord.ButtonStyle.danger, custom_id=CLOCK_OUT_ID, row=row)
        self.handler = handler

    async def callback(self, interaction: discord.Interaction) -> None:
        await self.handler.handle_clock_out(interaction)


class PreferenceButton(discord.ui.Button):
    """Toggles one preference tag, or clears them all for the reserved clear tag."""

    def __init__(self, handler: RosterInteractionHandler, tag: str, label: str, *, row: int):
        style = discord.ButtonStyle.secondary if tag == CLEAR_PREFERENCES_TAG else discord.ButtonStyle.primary
        super().__init__(label=label, style=style, custom_id=preference_custom_id(tag), row=row)
        self.handler = handler
        self.tag = tag

    async def callback(self, interaction: discord.Interaction) -> None:
        await self.handler.handle_preference(interaction, self.tag)


class ClockStationView(discord.ui.View):
    """Clock In / Clock Out plus one button per preference tag and a Clear button."""

    def __init__(self, handler: RosterInteractionHandler, preference_tags: Mapping[str, str]):
        super().__init__(timeout=None)
        self.add_item(ClockInButton(handler))
        self.add_item(ClockOutButton(handler))

        if preference_tags:
            buttons = [(tag, label) for tag, label in preference_tags.items()]
            buttons.append((CLEAR_PREFERENCES_TAG, "Clear"))
            for index, (tag, label) in enumerate(buttons):
                row = 1 + index // _BUTTONS_PER_ROW
                self.add_item(PreferenceButton(handler, tag, label, row=row))


class RosterSummaryView(discord.ui.View):
    """Clock In / Clock Out attached to the pinned roster summary."""

    def __init__(self, handler: RosterInteractionHandler):
        super().__init__(timeout=None)
        self.add_item(ClockInButton(handler, label="Clock In ✅"))
        self.add_item(ClockOutButton(handler, label="Clock Out 👋"))
