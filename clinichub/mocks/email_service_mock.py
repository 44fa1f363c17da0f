"""
Email Service Mock

Mock email channel used by the onboarding notification task when no real
provider is configured. Keeps every sent message for inspection.
"""

import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Simulated provider rejection."""


class EmailServiceMock:
    """Mock email service implementation."""
    
    def __init__(self, provider: str = "sendgrid", failure_rate: float = 0.0):
        self.provider = provider
        self.failure_rate = failure_rate
        
        # Mock email storage
        self._sent_emails = []
        
        logger.info(f"EmailServiceMock initialized: {provider}")
    
    def send_email(self, to_address: str, subject: str, body: str,
                   from_address: str = "noreply@clinichub.local") -> Dict[str, Any]:
        """Send an email."""
        if self._should_fail():
            logger.error(f"Email send failed to {to_address}")
            raise EmailDeliveryError("Email delivery failed: Service temporarily unavailable")
        
        message_id = str(uuid.uuid4())
        self._sent_emails.append({
            "message_id": message_id,
            "to_address": to_address,
            "from_address": from_address,
            "subject": subject,
            "body": body,
            "sent_at": datetime.now(timezone.utc).isoformat(),
            "provider": self.provider
        })
        
        logger.info(f"Email sent: {message_id} to {to_address}")
        return {"message_id": message_id, "status": "sent", "provider_response": f"{self.provider}_accepted"}
    
    def get_sent_emails(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Get list of recently sent emails."""
        return self._sent_emails[-limit:]
    
    def clear_email_history(self) -> None:
        self._sent_emails.clear()
    
    def _should_fail(self) -> bool:
        """Determine if operation should fail based on configured rate."""
        return random.random() < self.failure_rate
