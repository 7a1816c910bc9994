from fastapi import FastAPI

from hostprobe.api import probe

app = FastAPI(title="hostprobe")

app.include_router(probe.router, prefix="/probe", tags=["probe"])
