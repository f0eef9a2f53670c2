from typing import Optional
from fastapi import HTTPException, Header

import config
from analytics import ADMIN_SCOPE, ViewerScope

def verify_admin(x_api_key: str = Header(default="")):
    if x_api_key != config.ADMIN_API_KEY:
        raise HTTPException(status_code=401, detail="Invalid admin API key")

def current_alumni_id(x_alumni_id: int = Header(...)) -> int:
    """Respondent identity, as resolved by the upstream auth layer."""
    return x_alumni_id

def viewer_scope(x_study_program_id: Optional[int] = Header(default=None)) -> ViewerScope:
    """Program heads are bound to one study program; admins see every respondent."""
    if x_study_program_id is None:
        return ADMIN_SCOPE
    return ViewerScope(study_program_id=x_study_program_id)
