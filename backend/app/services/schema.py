"""Binary schema for the upstream StreamChat protocol.

The message classes are built at import time from a ``FileDescriptorProto``
instead of a generated ``_pb2`` module. Equivalent ``.proto``::

    message ChatMessage {
      message UserMessage { string content = 1; int32 role = 2; string message_id = 13; }
      message Instructions { string instruction = 1; }
      message Model { string name = 1; string empty = 4; }
      repeated UserMessage messages = 2;
      Instructions instructions = 4;
      string projectPath = 5;
      Model model = 7;
      string requestId = 9;
      string summary = 11;
      string conversationId = 15;
    }
    message ResMessage { string msg = 1; }
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from app.models.envelope import ChatRequestMessage, OutboundEnvelope, Role

PACKAGE = "aiserver.v1"

_F = descriptor_pb2.FieldDescriptorProto


def _add_field(message, name: str, number: int, type_=_F.TYPE_STRING, type_name=None, repeated=False):
    field = message.field.add(
        name=name,
        number=number,
        type=type_,
        label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
    )
    if type_name:
        field.type_name = f".{PACKAGE}.{type_name}"
    return field


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="streamchat.proto",
        package=PACKAGE,
        syntax="proto3",
    )

    chat = file_proto.message_type.add(name="ChatMessage")

    user = chat.nested_type.add(name="UserMessage")
    _add_field(user, "content", 1)
    _add_field(user, "role", 2, _F.TYPE_INT32)
    _add_field(user, "message_id", 13)

    instructions = chat.nested_type.add(name="Instructions")
    _add_field(instructions, "instruction", 1)

    model = chat.nested_type.add(name="Model")
    _add_field(model, "name", 1)
    _add_field(model, "empty", 4)

    _add_field(chat, "messages", 2, _F.TYPE_MESSAGE, "ChatMessage.UserMessage", repeated=True)
    _add_field(chat, "instructions", 4, _F.TYPE_MESSAGE, "ChatMessage.Instructions")
    _add_field(chat, "projectPath", 5)
    _add_field(chat, "model", 7, _F.TYPE_MESSAGE, "ChatMessage.Model")
    _add_field(chat, "requestId", 9)
    _add_field(chat, "summary", 11)
    _add_field(chat, "conversationId", 15)

    res = file_proto.message_type.add(name="ResMessage")
    _add_field(res, "msg", 1)

    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())

ChatMessage = message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.ChatMessage"))
ResMessage = message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.ResMessage"))


def serialize_envelope(envelope: OutboundEnvelope) -> bytes:
    """Encode an envelope as a ``ChatMessage`` payload."""
    message = ChatMessage()
    for msg in envelope.messages:
        message.messages.add(
            content=msg.content,
            role=int(msg.role),
            message_id=msg.message_id,
        )
    message.instructions.instruction = envelope.instruction
    message.projectPath = envelope.project_path
    message.model.name = envelope.model_name
    message.model.empty = ""
    message.requestId = envelope.request_id
    message.summary = envelope.summary
    message.conversationId = envelope.conversation_id
    return message.SerializeToString()


def parse_envelope(payload: bytes) -> OutboundEnvelope:
    """Decode a ``ChatMessage`` payload back into an envelope."""
    message = ChatMessage.FromString(payload)
    return OutboundEnvelope(
        messages=tuple(
            ChatRequestMessage(
                role=Role(msg.role),
                content=msg.content,
                message_id=msg.message_id,
            )
            for msg in message.messages
        ),
        instruction=message.instructions.instruction,
        project_path=message.projectPath,
        model_name=message.model.name,
        request_id=message.requestId,
        conversation_id=message.conversationId,
        summary=message.summary,
    )


def parse_fragment(payload: bytes) -> str:
    """Return the text of one ``ResMessage`` payload.

    Unknown fields are skipped and a missing ``msg`` reads as ``""``.

    Raises:
        google.protobuf.message.DecodeError for malformed payloads.
        UnicodeDecodeError for invalid UTF-8 text under the pure-Python backend.
    """
    return ResMessage.FromString(payload).msg
