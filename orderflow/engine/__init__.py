"""
Execution engine: journal events, start/resume and callback submission.

Import the submodules directly (``orderflow.engine.executor``,
``orderflow.engine.callbacks``) or use the re-exports on ``orderflow``.
"""
