"""adapters.converse

Request builders and response extractors for the Bedrock **Converse** API.

Payloads are the keyword arguments of boto3's ``converse`` / ``converse_stream``
so a transport can pass them through untouched. Two builder variants exist:

* ``create_converse_input`` for models that accept a system prompt;
* ``create_converse_input_without_system_context`` for models that do not
  (Titan text, Mistral 7B Instruct, Mixtral 8x7B Instruct). Their system message
  is sent as a user turn instead.
"""

from __future__ import annotations

import base64
import logging
import re
from typing import TYPE_CHECKING, Any

from model_dispatch.core.types import AttachmentEncoding, AttachmentKind, Role
from model_dispatch.params.inference_params import resolve_inference_params

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from model_dispatch.core.types import (
        Attachment,
        GuardrailConfig,
        InferenceParams,
        InferenceParamsOverride,
        Message,
    )

logger = logging.getLogger(__name__)

# Converse rejects document names with characters outside this set (e.g. Japanese).
_DOCUMENT_NAME_FORBIDDEN = re.compile(r'[^a-zA-Z0-9\s\-()[\]]')
DOCUMENT_NAME_PLACEHOLDER = 'X'


# ---------------------------------------------------------------------------
# Content blocks
# ---------------------------------------------------------------------------


def sanitize_document_name(file_name: str) -> str:
    """Strip the extension(s) and replace characters Converse would reject."""
    return _DOCUMENT_NAME_FORBIDDEN.sub(DOCUMENT_NAME_PLACEHOLDER, file_name.split('.')[0])


def document_format(file_name: str) -> str:
    return file_name.rsplit('.', 1)[-1]


def attachment_block(attachment: Attachment) -> dict[str, Any] | None:
    """Translate one attachment into a Converse content block.

    Returns None for combinations Converse cannot take (only video may be
    referenced by s3 uri).
    """
    if attachment.encoding is AttachmentEncoding.base64:
        source: dict[str, Any] = {'bytes': base64.b64decode(attachment.data)}
    elif attachment.kind is AttachmentKind.video:
        source = {'s3Location': {'uri': attachment.data}}
    else:
        return None

    if attachment.kind is AttachmentKind.document:
        return {
            'document': {
                'format': document_format(attachment.name),
                'name': sanitize_document_name(attachment.name),
                'source': source,
            },
        }
    return {attachment.kind.value: {'format': attachment.subtype, 'source': source}}


def _content_blocks(message: Message) -> list[dict[str, Any]]:
    blocks: list[dict[str, Any]] = [{'text': message.content}]
    for attachment in message.attachments:
        block = attachment_block(attachment)
        if block is None:
            logger.warning(
                'Skipping %s attachment with %s encoding: not supported by Converse',
                attachment.kind,
                attachment.encoding,
            )
            continue
        blocks.append(block)
    return blocks


# ---------------------------------------------------------------------------
# Request builders
# ---------------------------------------------------------------------------


def _finish_input(
    request: dict[str, Any],
    use_case_id: str,
    default_params: InferenceParams,
    usecase_params: Mapping[str, InferenceParamsOverride],
    guardrail: GuardrailConfig | None,
) -> dict[str, Any]:
    params = resolve_inference_params(use_case_id, default_params, usecase_params)
    request['inferenceConfig'] = params.to_converse()
    # boto3 rejects None members, so the key is left out entirely.
    if guardrail is not None:
        request['guardrailConfig'] = guardrail.to_converse()
    return request


def create_converse_input(
    messages: Sequence[Message],
    use_case_id: str,
    model_id: str,
    default_params: InferenceParams,
    usecase_params: Mapping[str, InferenceParamsOverride],
    guardrail: GuardrailConfig | None = None,
) -> dict[str, Any]:
    """Build a Converse request for a model with system prompt support."""
    system = next((m for m in messages if m.role is Role.system), None)
    conversation = [
        {
            'role': 'user' if m.role is Role.user else 'assistant',
            'content': _content_blocks(m),
        }
        for m in messages
        if m.role is not Role.system
    ]
    request: dict[str, Any] = {
        'modelId': model_id,
        'messages': conversation,
        'system': [{'text': system.content}] if system else [],
    }
    return _finish_input(request, use_case_id, default_params, usecase_params, guardrail)


def create_converse_input_without_system_context(
    messages: Sequence[Message],
    use_case_id: str,
    model_id: str,
    default_params: InferenceParams,
    usecase_params: Mapping[str, InferenceParamsOverride],
    guardrail: GuardrailConfig | None = None,
) -> dict[str, Any]:
    """Build a Converse request for a model without system prompt support.

    System messages are sent as user text at their original position. Converse
    requires alternating roles, so adjacent turns of the same role are merged
    into one, their texts joined with a blank line. Attachments are not sent.
    """
    conversation: list[dict[str, Any]] = []
    for m in messages:
        role = 'assistant' if m.role is Role.assistant else 'user'
        if conversation and conversation[-1]['role'] == role:
            previous = conversation[-1]['content'][0]
            previous['text'] = f'{previous["text"]}\n\n{m.content}'
            continue
        conversation.append({'role': role, 'content': [{'text': m.content}]})
    request: dict[str, Any] = {'modelId': model_id, 'messages': conversation}
    return _finish_input(request, use_case_id, default_params, usecase_params, guardrail)


def _with_stream_guardrail(request: dict[str, Any], guardrail: GuardrailConfig | None) -> dict[str, Any]:
    if guardrail is not None:
        request['guardrailConfig'] = guardrail.to_converse_stream()
    return request


def create_converse_stream_input(
    messages: Sequence[Message],
    use_case_id: str,
    model_id: str,
    default_params: InferenceParams,
    usecase_params: Mapping[str, InferenceParamsOverride],
    guardrail: GuardrailConfig | None = None,
) -> dict[str, Any]:
    """Streaming counterpart of `create_converse_input` (same payload shape)."""
    request = create_converse_input(messages, use_case_id, model_id, default_params, usecase_params, guardrail)
    return _with_stream_guardrail(request, guardrail)


def create_converse_stream_input_without_system_context(
    messages: Sequence[Message],
    use_case_id: str,
    model_id: str,
    default_params: InferenceParams,
    usecase_params: Mapping[str, InferenceParamsOverride],
    guardrail: GuardrailConfig | None = None,
) -> dict[str, Any]:
    """Streaming counterpart of `create_converse_input_without_system_context`."""
    request = create_converse_input_without_system_context(
        messages,
        use_case_id,
        model_id,
        default_params,
        usecase_params,
        guardrail,
    )
    return _with_stream_guardrail(request, guardrail)


# ---------------------------------------------------------------------------
# Response extractors
# ---------------------------------------------------------------------------


def extract_converse_output_text(response: Mapping[str, Any]) -> str:
    """Return the text of a Converse response, or '' if there is none.

    Providers return a single content block in practice; several blocks are
    joined with newlines.
    """
    content = ((response.get('output') or {}).get('message') or {}).get('content')
    if not content:
        return ''
    return '\n'.join(block['text'] for block in content if 'text' in block)


def extract_converse_stream_output_text(event: Mapping[str, Any]) -> str:
    """Return the text fragment carried by one stream event, or ''."""
    delta = (event.get('contentBlockDelta') or {}).get('delta') or {}
    return delta.get('text') or ''
