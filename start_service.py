#!/usr/bin/env python3
"""Service startup script."""

import os
import sys
import uvicorn
from pathlib import Path

# Add the src directory to Python path
project_root = Path(__file__).parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))


def main():
    """Start the solver service."""
    # Import after path is set
    from mesh_solver.config.settings import settings
    from mesh_solver.logging_config import configure_logging

    configure_logging(settings.log_level)

    uvicorn.run(
        "mesh_solver.main:create_app",
        factory=True,
        host=settings.host,
        port=int(os.environ.get("PORT", settings.port)),
        workers=int(os.environ.get("WEB_CONCURRENCY", 1)),
        log_level=settings.log_level.lower(),
        access_log=True,
        proxy_headers=True,
        forwarded_allow_ips="*",
        reload=False
    )


if __name__ == "__main__":
    main()
