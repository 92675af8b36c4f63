"""
RuleKeeper - Rules Assistant for Roleplay Discord Communities

RuleKeeper answers member questions about a roleplay server's community and
crew regulatory guidelines. The two plain-text rule documents are parsed into
structured rule records, indexed by keyword, concept, and section, and searched
for every incoming question. The retrieved rule text is handed to an
OpenAI-compatible completion service which writes the final reply.

Core Components:

- **Rules Engine**: Loads the rule documents (with embedded fallbacks), parses
  them into immutable rule records, builds concept/keyword/relationship indexes,
  and scores free-text queries against them
- **Critical Mappings**: Ordered override table that pins known scenarios to a
  fixed rule and verdict ahead of general search
- **AI Engine**: Builds the system prompt from retrieved rule context and asks
  the completion service for an answer
- **Discord Cogs**: Message listener for mentions and DMs plus a ``/rules``
  slash command group for lookups and index reloads

Usage:
    from rulekeeper.main import main
    main()  # Starts the bot
"""
