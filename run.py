#!/usr/bin/env python3
"""
Whale Tracker Bot - Entry Point
This script ensures proper module paths before importing the main application.
"""
import asyncio
import os
import sys
import traceback
from pathlib import Path

project_root = Path(__file__).parent.resolve()

if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

os.environ['PYTHONPATH'] = str(project_root) + os.pathsep + os.environ.get('PYTHONPATH', '')

# Namespace packages: a failed import here means the script was started from the wrong place
try:
    import core  # noqa: F401
    import bot  # noqa: F401
    import utils  # noqa: F401
except ImportError as e:
    print(f"✗ Error: Could not import modules: {e}")
    print(f"\nPlease run this from the project directory:")
    print(f"  cd {project_root}")
    print(f"  python run.py")
    sys.exit(1)

print(f"Project root: {project_root}")
print("Starting Whale Tracker Bot...\n")

from main import main  # noqa: E402

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nBot stopped by user")
    except Exception as e:
        print(f"\nFatal error: {e}")
        traceback.print_exc()
        sys.exit(1)
