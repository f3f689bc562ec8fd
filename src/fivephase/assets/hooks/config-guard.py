#!/usr/bin/env python3
"""5-Phase Workflow - UserPromptSubmit hook: configuration guard."""
import sys

try:
    from fivephase.hooks.config_guard import main
except ImportError as e:
    sys.stderr.write(
        f"5-phase workflow hook cannot run: {e} (interpreter: {sys.executable}). "
        "Re-run 'five-phase install' with the environment the package is installed in.\n"
    )
    sys.exit(1)

sys.exit(main())
