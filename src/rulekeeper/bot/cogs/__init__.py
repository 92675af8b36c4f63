"""
Cogs package for the RuleKeeper Discord bot.
Contains the rules slash command group and the message listener.
Each module defines a cog class and a setup function to register it with the bot.
The cogs are loaded explicitly in main.py to avoid dynamic imports.
"""
