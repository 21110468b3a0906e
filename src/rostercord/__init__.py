"""
Rostercord: a Discord clock-in roster bot.

Members clock in from a pinned button panel, receive a temporary role that
unlocks the party-finder channel, and are clocked out automatically once
their session expires. A pinned summary lists who is currently playing.
"""
