"""Test helpers to stub the OpenAI Responses client used by openai_client.py.

The stub records each ``responses.create`` call and answers with whatever the
test's ``reply`` callable returns for the call's ``input`` text. Returning an
exception instance makes the call raise it instead.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any


class _Resp:
    output_text: str

    def __init__(self, text: str) -> None:
        self.output_text = text


class OpenAIStub:
    """Minimal stub matching the ``openai.OpenAI().responses`` shape.

    Parameters
    ----------
    reply:
        Callable receiving the ``input`` user text and returning the model's
        output text, or an ``Exception`` to raise.
    calls_out:
        Optional list appended with each call's kwargs.
    """

    def __init__(
        self,
        reply: Callable[[str], str | Exception],
        calls_out: list[dict[str, Any]] | None = None,
    ) -> None:
        self._reply = reply
        self._calls = calls_out if calls_out is not None else []

        class _Responses:
            def __init__(self, outer: OpenAIStub) -> None:
                self._outer = outer

            def create(self, **kwargs: Any) -> _Resp:
                self._outer._calls.append(kwargs)
                out = self._outer._reply(kwargs["input"])
                if isinstance(out, Exception):
                    raise out
                return _Resp(out)

        self.responses = _Responses(self)

    @property
    def calls(self) -> list[dict[str, Any]]:
        return self._calls


class StatusError(Exception):
    """Carries an HTTP ``status_code`` like the SDK's API errors."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code
