"""
Handlers module for lesson session requests and transcripts.

Key components:
- session_handlers: REST handlers to register a lesson session, read its transcript and
  stop an active conversation.
- transcript_handlers: The transcript sink given to each AudioRouter. It stores completed
  utterances and ends the lesson after Марія's closing goodbye.

Usage examples:
```python
from avatar_bridge.handlers.session_handlers import handle_create_session
from avatar_bridge.handlers.transcript_handlers import TranscriptRecorder
from avatar_bridge.models.conversation import CreateSessionRequest, SessionContextStore

store = SessionContextStore()
created = await handle_create_session(CreateSessionRequest(user_name="Олена"), store)

recorder = TranscriptRecorder(created.session_id, store)
recorder("user", "Добрий день!")
```
"""

# Handlers module initialization
