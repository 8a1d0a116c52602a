"""
Job Applications Module

Handles the public job application intake flow:
1. Applicant requests a verification code for their email (15-minute expiry)
2. Applicant submits the code (3 attempts per code)
3. Applicant submits the full application with documents
4. Application is routed to the chosen office's HR inbox and the applicant
   receives a confirmation

API Endpoints:
- POST /send-email?action=send-verification - Email a verification code
- POST /send-email?action=verify-code - Verify the code
- POST /send-email - Submit the application (multipart)
- GET /application-options - Positions, offices and document slots

Security Features:
- CSPRNG codes compared in constant time
- Per-email resend rate limit (1 minute) and attempt cap
- Server-side upload size/type limits
- No verification codes in logs

State:
- Verification entries live in a process-local in-memory store and are
  swept opportunistically on every store access
"""

from .router import router

__all__ = ["router"]
