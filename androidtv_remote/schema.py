"""Descriptor helpers used to compile the fixed protocol schemas.

The pairing and remote-control schemas are declared in Python with these
helpers and compiled into a private descriptor pool when a codec is
constructed, so no .proto files are read at runtime.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import IntEnum
from typing import Any

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import Message

_FDP = descriptor_pb2.FieldDescriptorProto

_SCALAR_TYPES = {
    "bool": _FDP.TYPE_BOOL,
    "bytes": _FDP.TYPE_BYTES,
    "int32": _FDP.TYPE_INT32,
    "string": _FDP.TYPE_STRING,
    "uint32": _FDP.TYPE_UINT32,
}


def _json_name(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _base_field(
    name: str, number: int, *, repeated: bool
) -> descriptor_pb2.FieldDescriptorProto:
    return _FDP(
        name=name,
        number=number,
        json_name=_json_name(name),
        label=_FDP.LABEL_REPEATED if repeated else _FDP.LABEL_OPTIONAL,
    )


def scalar(
    name: str, number: int, kind: str, *, repeated: bool = False
) -> descriptor_pb2.FieldDescriptorProto:
    """Declare a scalar field (``bool``, ``bytes``, ``int32``, ``string``, ``uint32``)."""
    field = _base_field(name, number, repeated=repeated)
    field.type = _SCALAR_TYPES[kind]
    return field


def message(
    name: str, number: int, type_name: str, *, repeated: bool = False
) -> descriptor_pb2.FieldDescriptorProto:
    """Declare a field holding a message, type_name is fully qualified (``.pkg.Type``)."""
    field = _base_field(name, number, repeated=repeated)
    field.type = _FDP.TYPE_MESSAGE
    field.type_name = type_name
    return field


def enum(
    name: str, number: int, type_name: str
) -> descriptor_pb2.FieldDescriptorProto:
    """Declare an enum field, type_name is fully qualified."""
    field = _base_field(name, number, repeated=False)
    field.type = _FDP.TYPE_ENUM
    field.type_name = type_name
    return field


def add_enum(
    enums: Any,
    enum_cls: type[IntEnum],
    name: str | None = None,
) -> descriptor_pb2.EnumDescriptorProto:
    """Append an enum built from an IntEnum to a repeated enum_type container."""
    enum_proto = enums.add(name=name or enum_cls.__name__)
    for member in enum_cls:
        enum_proto.value.add(name=member.name, number=int(member))
    return enum_proto


def add_message(
    messages: Any,
    name: str,
    fields: Iterable[descriptor_pb2.FieldDescriptorProto] = (),
    *,
    oneof: str | None = None,
    oneof_fields: Iterable[descriptor_pb2.FieldDescriptorProto] = (),
) -> descriptor_pb2.DescriptorProto:
    """Append a message declaration to a repeated message_type/nested_type container.

    Fields listed in oneof_fields are grouped in a single oneof named oneof.
    """
    msg = messages.add(name=name)
    msg.field.extend(fields)
    if oneof is not None:
        msg.oneof_decl.add(name=oneof)
        index = len(msg.oneof_decl) - 1
        for field in oneof_fields:
            field.oneof_index = index
            msg.field.append(field)
    return msg


def new_file(name: str, package: str) -> descriptor_pb2.FileDescriptorProto:
    """Start a proto3 file declaration."""
    return descriptor_pb2.FileDescriptorProto(
        name=name, package=package, syntax="proto3"
    )


def compile_schema(
    file_proto: descriptor_pb2.FileDescriptorProto,
) -> descriptor_pool.DescriptorPool:
    """Compile a file declaration into its own descriptor pool."""
    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(file_proto.SerializeToString())
    return pool


def message_class(
    pool: descriptor_pool.DescriptorPool, full_name: str
) -> type[Message]:
    """Look up the generated message class for a fully qualified name."""
    return message_factory.GetMessageClass(pool.FindMessageTypeByName(full_name))
