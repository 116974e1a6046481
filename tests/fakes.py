"""Test doubles for the model transport and the streaming callback."""

from coachlix.models.llm import StreamChunk


class FakeTransport:
    """Model transport replaying scripted responses and recording every call.

    Each entry of ``streams`` is the chunk list for one streaming call; an
    exception in the list is raised at that point of the stream. Entries of
    ``once`` are returned (or raised) by successive one-shot calls.
    """

    def __init__(self, streams=None, once=None):
        self.streams = list(streams or [])
        self.once = list(once or [])
        self.stream_calls = []
        self.once_calls = []

    async def invoke_streaming(self, messages):
        self.stream_calls.append(list(messages))
        script = self.streams.pop(0) if self.streams else []
        for item in script:
            if isinstance(item, BaseException):
                raise item
            yield item

    async def invoke_once(self, messages):
        self.once_calls.append(list(messages))
        item = self.once.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def text(content: str) -> StreamChunk:
    """A plain text chunk."""
    return StreamChunk(content=content)


def function_call(name: str, args: dict | None = None, call_id: str | None = None) -> StreamChunk:
    """A chunk carrying one function call in its content array."""
    payload = {"name": name, "args": args or {}}
    if call_id:
        payload["id"] = call_id
    return StreamChunk(content=[{"functionCall": payload}])


class DeltaRecorder:
    """``on_chunk`` callback collecting every delta it receives."""

    def __init__(self):
        self.deltas = []

    async def __call__(self, delta):
        self.deltas.append(delta)

    @property
    def words(self) -> list[str]:
        return [d.word for d in self.deltas if not d.is_complete]

    @property
    def completions(self) -> list:
        return [d for d in self.deltas if d.is_complete]
