import io

from PIL import Image, ImageDraw, ImageFont

FONT_DIR = "/usr/share/fonts/truetype/dejavu"

# ==================== CERTIFICATE IMAGE GENERATION ====================

def _load_fonts():
    try:
        return (
            ImageFont.truetype(f"{FONT_DIR}/DejaVuSerif-Bold.ttf", 80),
            ImageFont.truetype(f"{FONT_DIR}/DejaVuSerif.ttf", 40),
            ImageFont.truetype(f"{FONT_DIR}/DejaVuSans.ttf", 36),
            ImageFont.truetype(f"{FONT_DIR}/DejaVuSans.ttf", 28),
        )
    except OSError:
        default = ImageFont.load_default()
        return default, default, default, default


def generate_certificate_image(user_name, course_title, instructor_name, completion_date, certificate_id) -> bytes:
    """Landscape PNG certificate of completion; pure function of its inputs"""
    width, height = 1920, 1080
    img = Image.new('RGB', (width, height), color='white')
    draw = ImageDraw.Draw(img)
    primary_color = (30, 64, 175)
    secondary_color = (75, 85, 99)
    accent_color = (96, 165, 250)
    draw.rectangle([50, 50, width-50, height-50], outline=primary_color, width=10)
    draw.rectangle([70, 70, width-70, height-70], outline=accent_color, width=3)
    title_font, subtitle_font, text_font, small_font = _load_fonts()

    def centered(text, font, y, fill):
        bbox = draw.textbbox((0, 0), text, font=font)
        draw.text(((width - (bbox[2]-bbox[0])) / 2, y), text, fill=fill, font=font)

    centered("CERTIFICATE", title_font, 120, primary_color)
    centered("OF COMPLETION", subtitle_font, 220, secondary_color)
    draw.line([(400, 290), (width-400, 290)], fill=(209, 213, 219), width=2)
    centered("This is to certify that", subtitle_font, 330, secondary_color)
    centered(user_name, title_font, 400, primary_color)
    centered("has successfully completed the course", text_font, 520, secondary_color)
    centered(course_title, title_font, 580, primary_color)
    centered(f"Instructor: {instructor_name}", text_font, 700, secondary_color)
    centered(f"Issued on: {completion_date}", small_font, 790, secondary_color)
    centered(f"Certificate ID: {certificate_id}", small_font, 860, secondary_color)
    draw.line([(width//2-200, 950), (width//2+200, 950)], fill=secondary_color, width=2)
    centered("SkillCerts", small_font, 960, secondary_color)

    buf = io.BytesIO()
    img.save(buf, format='PNG')
    buf.seek(0)
    return buf.getvalue()
