# run.py

import uvicorn
import os

from mms.config import settings

port = int(os.environ.get("PORT", 8000))

if __name__ == "__main__":
    uvicorn.run(
        "mms.main:app",
        host="0.0.0.0",
        port=port,
        reload=settings.DEBUG,
    )
