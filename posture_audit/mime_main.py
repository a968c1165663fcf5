"""MIME encode/decode job.

Reads text from stdin, applies the transfer encoding named by
``MIME_ACTION`` and writes the result to stdout.
"""

import logging
import sys

from posture_audit.config import MimeConfig
from posture_audit.services.logger import setup_logging
from posture_audit.utils import mime_codec


logger = logging.getLogger(__name__)


def convert(config: MimeConfig, text: str) -> str:
    """Apply the configured action to ``text``.

    Raises:
        ValueError: If the input cannot be decoded.
    """
    if config.action == "encode_base64":
        return mime_codec.encode_base64(text, config.charset)
    if config.action == "decode_base64":
        return mime_codec.decode_base64(text, config.charset)
    if config.action == "encode_qp":
        return mime_codec.encode_quoted_printable(text, config.charset)
    if config.action == "decode_qp":
        return mime_codec.decode_quoted_printable(text, config.charset)
    if config.action == "encode_subject":
        return mime_codec.encode_subject(text, config.encoding, config.charset)
    if config.action == "decode_header":
        return mime_codec.decode_encoded_words(text)

    detected, decoded = mime_codec.auto_decode(text)
    logger.info(f"Detected {detected} input")
    return decoded


def main() -> int:
    """Main execution function.

    Returns:
        int: Exit code (0 for success, 1 for invalid config or input).
    """
    try:
        config = MimeConfig.from_env()
        setup_logging(config.verbose)

        text = sys.stdin.read().rstrip("\n")
        sys.stdout.write(convert(config, text) + "\n")
        return 0

    except Exception as e:
        if not logging.getLogger().handlers:
            setup_logging()
        logger.error(f"MIME conversion failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
