"""Authentication and Two-Factor Endpoints

- POST /api/auth/register      - create an account
- POST /api/auth/login         - password login, may require a second factor
- POST /api/auth/otp/generate  - start two-factor setup (secret + otpauth URI)
- POST /api/auth/otp/verify    - confirm setup with a first code
- POST /api/auth/otp/validate  - complete a login with a code
- POST /api/auth/otp/disable   - stop requiring a second factor
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from otpgate.errors import (
    AccountConflictError,
    AccountNotFoundError,
    InvalidLabelError,
    InvalidTransitionError,
)
from otpgate.models.account import (
    AccountResponse,
    LoginRequest,
    OTPDisableRequest,
    OTPGenerateRequest,
    OTPTokenRequest,
    RegisterRequest,
)
from otpgate.models.auth import Authenticated, Credentials, Rejected, RequiresSecondFactor
from otpgate.services.auth_coordinator import AccountAuthCoordinator, get_auth_coordinator
from otpgate.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["authentication"])


def _rejected(result: Rejected) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"status": "fail", "message": result.message},
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    coordinator: AccountAuthCoordinator = Depends(get_auth_coordinator),
):
    """Register a new account with two-factor authentication off.

    Error responses:
        409: Email already registered
    """
    try:
        await coordinator.register(body.name, body.email, body.password)
    except AccountConflictError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already exists, please use another email address",
        )

    return {
        "status": "success",
        "message": "Registered successfully, please login",
    }


@router.post("/login")
async def login(
    body: LoginRequest,
    coordinator: AccountAuthCoordinator = Depends(get_auth_coordinator),
):
    """Password login.

    Returns:
        {
            "status": "success",
            "user": {...},
            "requires_second_factor": true,   // call /otp/validate next
            "session": null                   // set when no code is needed
        }

    Error responses:
        401: Unknown email or wrong password (same message for both)
    """
    result = await coordinator.login(Credentials(email=body.email, password=body.password))

    if isinstance(result, Rejected):
        return _rejected(result)

    account = await coordinator.get_account(result.account_id)
    return {
        "status": "success",
        "user": AccountResponse.from_account(account).model_dump(),
        "requires_second_factor": isinstance(result, RequiresSecondFactor),
        "session": result.session if isinstance(result, Authenticated) else None,
    }


@router.post("/otp/generate")
async def generate_otp(
    body: OTPGenerateRequest,
    coordinator: AccountAuthCoordinator = Depends(get_auth_coordinator),
):
    """Generate a new TOTP secret for the account.

    Returns:
        {
            "base32": "JBSWY3DPEHPK3PXP...",  // for manual entry
            "otpauth_url": "otpauth://totp/..."  // for the QR code
        }

    Error responses:
        400: Account email cannot be used as a label
        404: Account not found
        409: Concurrent two-factor change
    """
    try:
        provisioning = await coordinator.setup_second_factor(body.user_id)
    except AccountNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except InvalidLabelError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except AccountConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return {
        "base32": provisioning.base32,
        "otpauth_url": provisioning.otpauth_url,
    }


@router.post("/otp/verify")
async def verify_otp(
    body: OTPTokenRequest,
    coordinator: AccountAuthCoordinator = Depends(get_auth_coordinator),
):
    """Confirm two-factor setup with the first code from the authenticator app.

    Error responses:
        401: Invalid code or account missing
        409: Concurrent two-factor change
    """
    try:
        result = await coordinator.confirm_setup(body.user_id, body.token)
    except AccountConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if isinstance(result, Rejected):
        return _rejected(result)

    return {
        "otp_verified": True,
        "user": AccountResponse.from_account(result.account).model_dump(),
    }


@router.post("/otp/validate")
async def validate_otp(
    body: OTPTokenRequest,
    coordinator: AccountAuthCoordinator = Depends(get_auth_coordinator),
):
    """Complete a login with a code from the authenticator app.

    Error responses:
        401: Invalid code or account missing
        409: Concurrent two-factor change
    """
    try:
        result = await coordinator.complete_second_factor(body.user_id, body.token)
    except AccountConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if isinstance(result, Rejected):
        return _rejected(result)

    return {
        "otp_valid": True,
        "session": result.session,
    }


@router.post("/otp/disable")
async def disable_otp(
    body: OTPDisableRequest,
    coordinator: AccountAuthCoordinator = Depends(get_auth_coordinator),
):
    """Disable two-factor authentication. The secret is kept for re-enabling.

    Error responses:
        401: Code required by policy and invalid
        404: Account not found
        409: Two-factor was never set up, or concurrent change
    """
    try:
        result = await coordinator.disable_second_factor(body.user_id, body.token)
    except AccountNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except (InvalidTransitionError, AccountConflictError) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if isinstance(result, Rejected):
        return _rejected(result)

    return {
        "otp_disabled": True,
        "user": AccountResponse.from_account(result.account).model_dump(),
    }
