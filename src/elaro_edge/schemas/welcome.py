"""Welcome-email function payloads."""

from pydantic import BaseModel, ConfigDict, Field


class WelcomeEmailRequest(BaseModel):
    """New-user payload posted by the signup hook."""

    model_config = ConfigDict(populate_by_name=True)

    user_email: str = Field(..., alias="userEmail", min_length=1, description="Recipient address")
    user_first_name: str | None = Field(
        "there",
        alias="userFirstName",
        description="Greeting name; falls back to a neutral salutation",
    )
    user_id: str = Field(..., alias="userId", min_length=1, description="Auth user identifier")


class WelcomeEmailResponse(BaseModel):
    """Successful delivery acknowledgement."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "Welcome email sent successfully"
    email_id: str | None = Field(None, alias="emailId")
