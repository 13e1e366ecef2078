"""Wire protocol encoding and decoding."""

from owot_client.codec.wire import decode_content, encode_char, encode_edit, parse_message

__all__ = ["decode_content", "encode_char", "encode_edit", "parse_message"]
