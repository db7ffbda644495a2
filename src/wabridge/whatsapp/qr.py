"""QR challenge rendering for the pairing flow."""

import base64
import io
import sys
from typing import TextIO

import qrcode
from qrcode.constants import ERROR_CORRECT_M

QR_WIDTH_PX = 300
QR_MARGIN = 2


def _build(code: str) -> qrcode.QRCode:
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=QR_MARGIN)
    qr.add_data(code)
    qr.make(fit=True)
    return qr


class QrRenderer:
    """Turn a pairing code into a scannable image.

    The data URI is what GET /api/qr serves; the terminal rendering is for
    operators watching the process output.
    """

    def __init__(
        self,
        width: int = QR_WIDTH_PX,
        print_terminal: bool = True,
        out: TextIO | None = None,
    ) -> None:
        self._width = width
        self._print_terminal = print_terminal
        self._out = out

    def to_data_url(self, code: str) -> str:
        """Render as a PNG data URI about `width` pixels wide."""
        qr = _build(code)
        modules = qr.modules_count + 2 * QR_MARGIN
        qr.box_size = max(1, self._width // modules)

        buffer = io.BytesIO()
        qr.make_image(fill_color="black", back_color="white").save(buffer)
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/png;base64,{encoded}"

    def to_terminal(self, code: str) -> bool:
        """Print the code as block characters. Returns False when disabled."""
        if not self._print_terminal:
            return False
        out = self._out or sys.stdout
        out.write("\n")
        _build(code).print_ascii(out=out, invert=True)
        out.flush()
        return True
