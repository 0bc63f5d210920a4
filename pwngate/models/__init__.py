"""PwnGate models package.

Data contracts passed between the check pipeline stages and the HTTP layer:

  - credential.py: Credential, Fingerprint, RangeEntry, Verdict
  - decision.py:   Decision and Outcome (terminal pipeline output)
  - action.py:     builds the action-framework JSON response for a Decision
"""
