from typing import Optional
from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Authenticated caller, resolved from the auth backend's JWT."""
    user_id: str
    email: Optional[str] = None
    # Raw bearer token, forwarded when the checkout flow calls the API on the user's behalf
    access_token: Optional[str] = None
