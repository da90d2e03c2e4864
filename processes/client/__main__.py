from __future__ import annotations

from .mirror import main

if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
