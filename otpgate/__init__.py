"""OTP Gate - password login with TOTP two-factor authentication"""

__version__ = "1.0.0"
