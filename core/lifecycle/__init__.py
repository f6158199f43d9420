"""Contract lifecycle: models, state machine, repositories and controller.

Import from the submodules directly (``core.lifecycle.controller`` etc.).
"""
