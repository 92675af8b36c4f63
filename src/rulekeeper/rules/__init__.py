"""
Rule-document indexing and query-matching engine.

Leaves first:

- **document_loader.py**: Reads the community/crew documents, substituting the
  embedded fallback text when a file is missing or unreadable.
- **rules_parser.py**: Line-classifying state machine that turns raw document
  text into immutable :class:`RuleRecord` values.
- **rules_indexer.py**: Concept, keyword, and section indexes plus the rule
  relationship graph.
- **rules_matcher.py**: Weighted scoring search over a built index.
- **critical_mappings.py**: Ordered override table consulted before search.
- **rule_index.py**: The :class:`RuleIndex` value object and the
  :class:`RulesService` holder that publishes rebuilt indexes atomically.
"""
