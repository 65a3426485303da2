"""
Account routes (``/account``): signup, login, email verification, password
recovery, role changes, the unread notification count and the contact,
feedback and support forms.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from marketplace.api.auth import get_user_id, optional_user_id
from marketplace.api.encryption import decrypted_body, encrypted_response
from marketplace.api.models import (
    ContactMessageForm,
    EmailOnly,
    FeedbackForm,
    PasswordReset,
    PasswordUpdate,
    SignupData,
    SupportRequestForm,
    UserCredentials,
)
from marketplace.api.utils import clear_session_cookie, issue_access_token, set_session_cookie
from marketplace.database.core import support_funcs
from marketplace.database.core.auth_funcs import (
    become_role,
    forgot_password,
    get_current_user,
    login_user,
    resend_verification_email,
    reset_password,
    signup_user,
    switch_role,
    update_password,
    verify_email,
)
from marketplace.database.core.chat_funcs import count_unread_notifications

router = APIRouter(prefix="/account", tags=["account"])
"""Routes for account management."""


@router.post("/signup")
async def signup(body: dict = Depends(decrypted_body)):
    data = SignupData.model_validate(body)
    result = signup_user(
        username=data.username, email=data.email, password=data.password, user_type=data.user_type, agree_terms=data.agree_terms
    )
    return encrypted_response(result, status_code=201)


@router.post("/login")
async def login(body: dict = Depends(decrypted_body)):
    """
    Authenticate and issue a JWT.

    The token is returned in the body for ``Authorization: Bearer`` use and
    also set as the HttpOnly ``token`` cookie for browser clients.
    """
    data = UserCredentials.model_validate(body)
    auth = login_user(email=data.email, password=data.password)
    access_token = issue_access_token(auth["user_id"], auth["user_type"])
    payload = {"message": "Login successful", "token": access_token, "user_type": auth["user_type"], "user_data": auth["user_data"]}
    result = encrypted_response(payload)
    set_session_cookie(result, access_token)
    return result


@router.post("/logout")
async def logout():
    result = encrypted_response({"message": "Logged out successfully"})
    clear_session_cookie(result)
    return result


@router.get("/verify_email/{token}")
async def verify_email_route(token: str):
    return encrypted_response(verify_email(token=token))


@router.post("/resend_email")
async def resend_email(body: dict = Depends(decrypted_body)):
    data = EmailOnly.model_validate(body)
    return encrypted_response(resend_verification_email(email=data.email))


@router.post("/forgot_password")
async def forgot_password_route(body: dict = Depends(decrypted_body)):
    data = EmailOnly.model_validate(body)
    return encrypted_response(forgot_password(email=data.email))


@router.post("/reset_password/{token}")
async def reset_password_route(token: str, body: dict = Depends(decrypted_body)):
    data = PasswordReset.model_validate(body)
    return encrypted_response(reset_password(token=token, password=data.password))


@router.post("/update_password")
async def update_password_route(body: dict = Depends(decrypted_body), user_id: str = Depends(get_user_id)):
    data = PasswordUpdate.model_validate(body)
    return encrypted_response(
        update_password(user_id=user_id, current_password=data.current_password, new_password=data.new_password)
    )


@router.get("/me")
async def me(user_id: str = Depends(get_user_id)):
    return encrypted_response({"user": get_current_user(user_id=user_id)})


@router.post("/become_a_supplier")
async def become_supplier(user_id: str = Depends(get_user_id)):
    return encrypted_response(become_role(user_id=user_id, role="supplier"))


@router.post("/switch_role")
async def switch_role_route(body: dict = Depends(decrypted_body), user_id: str = Depends(get_user_id)):
    return encrypted_response(switch_role(user_id=user_id, role=body.get("role", "")))


@router.get("/unread_notifications_count")
async def unread_notifications_count(user_id: str = Depends(get_user_id)):
    return encrypted_response(count_unread_notifications(user_id=user_id))


# ----------------------------------------------------------------------------
# Contact & support forms (anonymous or signed in)
# ----------------------------------------------------------------------------


@router.post("/contact")
async def contact(body: dict = Depends(decrypted_body), user_id: Optional[str] = Depends(optional_user_id)):
    data = ContactMessageForm.model_validate(body)
    return encrypted_response(support_funcs.send_contact_message(user_id=user_id, **data.model_dump()), status_code=201)


@router.post("/feedback")
async def feedback(body: dict = Depends(decrypted_body), user_id: Optional[str] = Depends(optional_user_id)):
    data = FeedbackForm.model_validate(body)
    return encrypted_response(support_funcs.send_feedback(user_id=user_id, **data.model_dump()), status_code=201)


@router.post("/support")
async def support(body: dict = Depends(decrypted_body), user_id: Optional[str] = Depends(optional_user_id)):
    data = SupportRequestForm.model_validate(body)
    return encrypted_response(support_funcs.create_support_request(user_id=user_id, **data.model_dump()), status_code=201)
