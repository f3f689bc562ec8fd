#!/usr/bin/env python3
"""5-Phase Workflow - PreToolUse hook: planning-phase guard."""
import sys

try:
    from fivephase.hooks.plan_guard import main
except ImportError as e:
    sys.stderr.write(
        f"5-phase workflow hook cannot run: {e} (interpreter: {sys.executable}). "
        "Re-run 'five-phase install' with the environment the package is installed in.\n"
    )
    # a guard that cannot run refuses the tool call
    sys.exit(2)

sys.exit(main())
