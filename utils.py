import io
import os
import re
import secrets
import string
import unicodedata
from urllib.parse import quote
from zipfile import ZipFile

import qrcode
from qrcode.image.styledpil import StyledPilImage
from qrcode.image.styles.moduledrawers import RoundedModuleDrawer
from qrcode.image.styles.colormasks import SolidFillColorMask
from PIL import Image

SLUG_PREFIX = "card-"
SLUG_ALPHABET = string.ascii_lowercase + string.digits
VCARD_MEDIA_TYPE = "text/vcard"


def generate_vcard(data: dict) -> str:
    name = data.get("business_name") or ""
    vcard = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"FN:{name}",
        f"ORG:{name}",
    ]

    # Optional fields
    if data.get("business_description"):
        vcard.append(f"NOTE:{data['business_description']}")

    vcard.append(f"TEL;TYPE=work,voice:{data.get('phone_number') or ''}")
    vcard.append(f"EMAIL;TYPE=work:{data.get('email') or ''}")
    vcard.append(f"ADR;TYPE=work:;;{data.get('address') or ''}")

    if data.get("website"):
        vcard.append(f"URL:{data['website']}")

    vcard.append("END:VCARD")
    return "\r\n".join(vcard)


def vcard_filename(business_name: str) -> str:
    return re.sub(r"\s+", "_", business_name or "") + ".vcf"


def content_disposition(filename: str) -> str:
    """Attachment header for ``filename``, RFC 5987 encoded when it is not plain ASCII."""
    quoted = quote(filename, safe="")
    if quoted == filename:
        return f'attachment; filename="{filename}"'
    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = re.sub(r'["\\\x00-\x1f\x7f]', "_", fallback)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quoted}"


def generate_slug(length: int = 6) -> str:
    return SLUG_PREFIX + "".join(secrets.choice(SLUG_ALPHABET) for _ in range(length))


def card_url(base_url: str, slug: str) -> str:
    return f"{base_url.rstrip('/')}/card/{slug}"


def make_qr_png(data: str, logo_path: str = "logo.png") -> bytes:
    """Render ``data`` as a styled QR code, with the logo centred if present."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=10,
        border=4
    )
    qr.add_data(data)
    qr.make(fit=True)

    qr_img = qr.make_image(
        image_factory=StyledPilImage,
        module_drawer=RoundedModuleDrawer(),
        color_mask=SolidFillColorMask(front_color=(30, 60, 114), back_color=(224, 255, 255))
    )

    # Optional logo
    if logo_path and os.path.exists(logo_path):
        logo = Image.open(logo_path)
        basewidth = int(qr_img.size[0] * 0.2)
        wpercent = (basewidth / float(logo.size[0]))
        hsize = int((float(logo.size[1]) * float(wpercent)))
        logo = logo.resize((basewidth, hsize), Image.Resampling.LANCZOS)
        pos = ((qr_img.size[0] - logo.size[0]) // 2, (qr_img.size[1] - logo.size[1]) // 2)
        if logo.mode == "RGBA":
            qr_img.paste(logo, pos, mask=logo.split()[3])
        else:
            qr_img.paste(logo, pos)

    buf = io.BytesIO()
    qr_img.save(buf, format="PNG")
    return buf.getvalue()


def build_card_package(vcard_content: str, qr_png: bytes) -> bytes:
    buf = io.BytesIO()
    with ZipFile(buf, "w") as zipf:
        zipf.writestr("card.vcf", vcard_content)
        zipf.writestr("qrcode.png", qr_png)
    return buf.getvalue()
