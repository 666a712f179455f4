#!/usr/bin/env python
"""List the functions a range of commits touched in a Node.js project.

Usage::

    python run_pit.py                          # HEAD^..HEAD in the current directory
    python run_pit.py /path/to/repo            # HEAD^..HEAD in another repository
    python run_pit.py /path/to/repo main       # main..HEAD
    python run_pit.py /path/to/repo v1.0 v2.0  # v1.0..v2.0

Environment (.env file or shell exports)::

    PIT_ANALYZER_CMD   npx ts-node ts_src/ffi/called.ts
    PIT_PIPE_PATH      /tmp/pip_pipe
    PIT_MATCH_POLICY   substring | suffix
"""

from __future__ import annotations

import sys

from pit.cli import main

if __name__ == "__main__":
    sys.exit(main())
