from typing import Optional

from pydantic import BaseModel


class NlQueryIn(BaseModel):
    prompt: Optional[str] = None
    narrate: bool = False


class ChatIn(BaseModel):
    prompt: Optional[str] = None
    context: Optional[str] = None
