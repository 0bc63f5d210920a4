"""PwnGate breach-check pipeline.

Stages, in order (no state is carried between requests):

  extractor.py    event payload   -> Credential
  fingerprint.py  Credential      -> Fingerprint (SHA-1, 5/35 split)
  lookup.py       prefix          -> list[RangeEntry]   (one outbound GET)
  resolver.py     suffix, entries -> Verdict
  policy.py       Verdict | lookup failure -> Decision
"""
