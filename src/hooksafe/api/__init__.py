"""FastAPI adapter for Hooksafe.

Exposes the orchestrator over HTTP and runs the retry sweeper for the
lifetime of the application.

Example:
    ```python
    import uvicorn
    from hooksafe.api import create_app

    app = create_app(processor=my_router)
    uvicorn.run(app, host="0.0.0.0", port=8000)
    ```
"""

from .app import create_app
from .router import router

__all__ = [
    "create_app",
    "router",
]
