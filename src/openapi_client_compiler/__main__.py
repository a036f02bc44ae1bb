"""Run the compiler as ``python -m openapi_client_compiler``."""

from .cli import main

raise SystemExit(main())
