"""FastAPI application backed by the MongoDB session store."""

from typing import Dict

from fastapi import Depends, FastAPI

from mongo_session import Session, database
from mongo_session.middleware import SessionMiddleware, get_session

app = FastAPI()
app.add_middleware(SessionMiddleware)


@app.on_event("startup")
async def startup() -> None:
    await database.connect()


@app.on_event("shutdown")
async def shutdown() -> None:
    await database.close()


@app.get("/")
async def read_root() -> Dict[str, str]:
    return {"message": "Session store running"}


@app.get("/visits")
async def visits(session: Session = Depends(get_session)) -> Dict[str, int]:
    count = session.get("visits", 0) + 1
    session.insert("visits", count)
    return {"visits": count}


@app.post("/logout")
async def logout(session: Session = Depends(get_session)) -> Dict[str, str]:
    session.destroy()
    return {"status": "logged out"}
