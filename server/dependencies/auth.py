from fastapi import Header, HTTPException, Request


async def verify_api_key(request: Request, x_api_key: str = Header(...)) -> None:
    """Verify the X-Api-Key header against the configured API key.

    Args:
        request (Request): The FastAPI request object (provides app.state).
        x_api_key (str): The value of the X-Api-Key header.

    Raises:
        HTTPException: 401 if the key does not match.
    """
    helper_config = request.app.state.helper_config
    expected_key = helper_config.get_string_val("API_SERVER_API_KEY")
    if x_api_key != expected_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


async def get_owner_id(x_user_id: str = Header(...)) -> str:
    """Owner of the request, as asserted by the upstream identity service.

    Raises:
        HTTPException: 400 if the X-User-Id header is blank.
    """
    owner_id = x_user_id.strip()
    if not owner_id:
        raise HTTPException(status_code=400, detail="X-User-Id header must not be empty")
    return owner_id
