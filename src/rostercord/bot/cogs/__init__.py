"""
Cogs package for Rostercord.
Each module defines a cog class and a setup function that registers it with the bot.
The cogs are loaded explicitly in main.py, which also hands them the roster runtime.
"""
