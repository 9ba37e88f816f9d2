import os

import uvicorn

from yaymon.main import create_app

if __name__ == "__main__":
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(create_app(), host="0.0.0.0", port=port)
