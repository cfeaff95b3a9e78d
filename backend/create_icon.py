"""Generate the tray icon for Clarity Desk."""
from pathlib import Path

from PIL import Image, ImageDraw


def create_icon(target: Path = Path("icon.ico")) -> Path:
    size = 256
    img = Image.new("RGBA", (size, size), (0, 0, 0, 255))
    draw = ImageDraw.Draw(img)

    red = (255, 59, 48)

    # Stacked layers mark: a diamond on top of a chevron.
    draw.polygon([(128, 40), (220, 96), (128, 152), (36, 96)], fill=red)
    draw.line([(36, 168), (128, 216), (220, 168)], fill=red, width=22, joint="curve")

    img.save(target, format="ICO", sizes=[(256, 256), (128, 128), (64, 64), (48, 48), (32, 32), (16, 16)])
    return target


if __name__ == "__main__":
    print(f"{create_icon()} created")
