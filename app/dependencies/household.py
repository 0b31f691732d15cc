from typing import Optional

from fastapi import Header, HTTPException, status


def normalize_household_code(code: Optional[str]) -> Optional[str]:
    if code is None:
        return None
    code = code.strip().upper()
    return code or None


def require_household(
    x_household_code: Optional[str] = Header(default=None),
) -> str:
    """
    Households are identified by the code the client sends in x-household-code.
    """
    code = normalize_household_code(x_household_code)
    if not code:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing x-household-code header",
        )
    return code
