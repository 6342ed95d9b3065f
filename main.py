from __future__ import annotations

import os

from schedule_chat.app import app

if __name__ == "__main__":
  import uvicorn

  uvicorn.run("main:app",
              host=os.getenv("HOST", "0.0.0.0"),
              port=int(os.getenv("PORT", "3000")))
