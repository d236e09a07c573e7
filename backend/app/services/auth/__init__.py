from app.services.auth.security import (
    create_access_token,
    decode_token,
    extract_user_id,
)
from app.services.auth.service import get_current_user_id
