#!/usr/bin/env python3
"""
Run script for the FieldVoice command service
"""
import uvicorn

from fieldvoice.config.settings import settings
from fieldvoice.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
