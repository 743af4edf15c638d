"""
Client Icons service package.

This package decides which icons (visual tags) a client record carries
automatically. It provides:

- app.conditions: Condition tree model, parser and evaluator.
- app.auto_assign: Reconciliation of auto-assigned icons and the
  service that writes the result back through injected collaborators.

Guidelines:
- Evaluation and reconciliation are pure; all I/O sits behind the
  TagSource and AssignmentStore protocols.
- Manually assigned icons are never added or removed here.
- Bad data makes a condition not match; it never raises at evaluation time.
"""
