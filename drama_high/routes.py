"""FastAPI endpoints under /api.

The presentation layer reads GET /session after every action and re-renders
from it. Player input arrives as POST /session/choice; the other POSTs are
the sidebar buttons (insight, save, load, mute).
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from drama_high import config
from drama_high.errors import (
    NoSaveError,
    SaveLoadError,
    SessionBusyError,
    UnknownChoiceError,
)
from drama_high.session import Session, SessionView

router = APIRouter()


class ChoiceBody(BaseModel):
    choice_id: str


def get_session(request: Request) -> Session:
    return request.app.state.session


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/session", response_model=SessionView)
async def get_view(session: Session = Depends(get_session)):
    """Current screen: text, choices, flags, sidebar state."""
    return session.view()


@router.post("/session/start", response_model=SessionView)
async def start(session: Session = Depends(get_session)):
    """Request the opening scene."""
    try:
        await session.start()
    except SessionBusyError as e:
        raise HTTPException(409, str(e))
    return session.view()


@router.post("/session/choice", response_model=SessionView)
async def choose(body: ChoiceBody, session: Session = Depends(get_session)):
    """The player picked a choice. Turn failures come back in the view's error field."""
    try:
        await session.choose(body.choice_id)
    except SessionBusyError as e:
        raise HTTPException(409, str(e))
    except UnknownChoiceError as e:
        raise HTTPException(400, str(e))
    return session.view()


@router.post("/session/insight", response_model=SessionView)
async def insight(session: Session = Depends(get_session)):
    """Ask for a one-line vibe check of the current scene."""
    try:
        await session.request_insight()
    except SessionBusyError as e:
        raise HTTPException(409, str(e))
    return session.view()


@router.post("/session/save")
async def save(session: Session = Depends(get_session)):
    """Write the session and current screen to the save slot."""
    session.save()
    return {"ok": True}


@router.post("/session/load", response_model=SessionView)
async def load(session: Session = Depends(get_session)):
    """Restore the save slot."""
    try:
        session.load()
    except SessionBusyError as e:
        raise HTTPException(409, str(e))
    except NoSaveError as e:
        raise HTTPException(404, str(e))
    except SaveLoadError:
        raise HTTPException(422, "No valid save")
    return session.view()


@router.post("/audio/mute")
async def toggle_mute(session: Session = Depends(get_session)):
    """Toggle global mute. Also unlocks audio output on first use."""
    return {"muted": session.toggle_mute()}


@router.get("/settings")
async def get_settings(request: Request):
    """Get app settings (generator connection, audio)."""
    return config.get_config(request.app.state.data_dir)


@router.patch("/settings")
async def update_settings(request: Request, body: dict):
    """Update app settings (partial merge). Takes effect on next start."""
    return config.update_config(request.app.state.data_dir, body)
