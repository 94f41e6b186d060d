#!/usr/bin/env python3
"""Run script for studybuddy."""

import logging
import os

import uvicorn

if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG if os.getenv("DEBUG", "False").lower() == "true" else logging.INFO)
    uvicorn.run(
        "studybuddy.api.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True
    )
