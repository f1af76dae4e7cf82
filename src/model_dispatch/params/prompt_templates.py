"""params.prompt_templates

Prompt wrapping for custom endpoints that take a single prompt string instead of
a structured chat payload.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from model_dispatch.core.types import Role

if TYPE_CHECKING:
    from collections.abc import Iterable

    from model_dispatch.core.types import Message


class PromptTemplate(BaseModel):
    """Role markers and separators of one model family.

    ``user``, ``assistant`` and ``system`` contain a ``{}`` placeholder that is
    replaced by the message content.
    """

    prefix: str
    suffix: str
    join: str
    user: str
    assistant: str
    system: str
    eos_token: str

    model_config = ConfigDict(frozen=True)

    def render(self, messages: Iterable[Message]) -> str:
        """Flatten a conversation into one prompt string."""
        markers = {Role.user: self.user, Role.assistant: self.assistant, Role.system: self.system}
        body = self.join.join(markers[m.role].replace('{}', m.content, 1) for m in messages)
        return self.prefix + body + self.suffix

    def strip_eos(self, text: str) -> str:
        return text.replace(self.eos_token, '')


LLAMA_PROMPT = PromptTemplate(
    prefix='<s>[INST] ',
    suffix=' [/INST]',
    join='',
    user='{}',
    assistant=' [/INST] {}</s><s>[INST] ',
    system='<<SYS>>\n{}\n<</SYS>>\n\n',
    eos_token='</s>',
)

BILINGUAL_RINNA_PROMPT = PromptTemplate(
    prefix='',
    suffix='システム: ',
    join='\n',
    user='ユーザー: {}',
    assistant='システム: {}',
    system='システム: {}',
    eos_token='</s>',
)

RINNA_PROMPT = PromptTemplate(
    prefix='',
    suffix='システム: ',
    join='<NL>',
    user='ユーザー: {}',
    assistant='システム: {}',
    system='システム: {}',
    eos_token='</s>',
)
