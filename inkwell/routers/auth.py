from fastapi import APIRouter, Depends

from inkwell.security import Identity, get_current_identity

router = APIRouter(tags=["auth"])


@router.get("/auth")
def auth_status():
    return {"message": "Auth route working, public access"}


@router.get("/auth/profile")
def profile(identity: Identity = Depends(get_current_identity)):
    """Echo the identity verified for this request."""
    return {
        "message": "Authenticated user info",
        "userId": identity.user_id,
        "sessionId": identity.session_id,
    }
