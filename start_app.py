#!/usr/bin/env python
"""Start the storefront order service, honouring PORT and LOG_LEVEL."""
import os

import uvicorn

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    log_level = os.environ.get("LOG_LEVEL", "info").lower()

    print(f"Starting storefront order service on port {port}")

    uvicorn.run(
        "storefront.main:app",
        host="0.0.0.0",
        port=port,
        log_level=log_level
    )
