from pydantic import BaseModel


class SessionInfo(BaseModel):
    """
    Represents a successful login against the session service.
    """
    session_id: str
    return_code: int
    message: str = ""
