"""占位图（Image Generator）组件：为没有图表的幻灯片提供配图。

核心职责：
- 以幻灯片 `id` 作为种子，给出可直接引用的占位图 URL；
- 用 PIL 在内存中生成同一种子下稳定不变的占位图，供 pptx 渲染插入；
- 图片加载失败（例如 URL 不可达）不做特殊处理。

实现要点：
- 颜色由种子派生，不依赖全局随机状态；
- 图片只写入内存流，不落盘。
"""

import hashlib
import io
import random
from typing import Optional
from urllib.parse import quote

from PIL import Image, ImageDraw, ImageFont

from daly_master.common.types import PlaceholderImage
from daly_master.common.utils import get_logger

logger = get_logger(__name__)

PLACEHOLDER_URL = "https://picsum.photos/seed/{seed}/{width}/{height}"


class PlaceholderImageSource:
    """占位图来源：返回 URL 或内存中的 PNG 图片。"""

    def __init__(self, width: int = 800, height: int = 600):
        self.width = width
        self.height = height

    def url_for(self, seed: str) -> str:
        return PLACEHOLDER_URL.format(seed=quote(seed, safe=""), width=self.width, height=self.height)

    def describe(self, seed: str) -> PlaceholderImage:
        return PlaceholderImage(seed=seed, url=self.url_for(seed))

    def render(self, seed: str, caption: Optional[str] = None) -> io.BytesIO:
        """生成占位图并返回 PNG 内存流（读指针位于开头）。"""
        # 同一种子得到同一张图
        digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()
        rng = random.Random(int(digest[:16], 16))
        color = (rng.randint(50, 200), rng.randint(50, 200), rng.randint(50, 200))
        img = Image.new('RGB', (self.width, self.height), color=color)
        d = ImageDraw.Draw(img)

        # 尝试加载系统字体，失败时回退默认字体
        try:
            font = ImageFont.truetype("Arial.ttf", 32)
        except IOError:
            font = ImageFont.load_default()

        if caption:
            d.text((40, 40), caption[:60], fill=(255, 255, 255), font=font)
        d.text((40, self.height - 60), "Placeholder", fill=(230, 230, 230), font=font)

        stream = io.BytesIO()
        img.save(stream, format="PNG")
        stream.seek(0)
        logger.debug(f"Rendered placeholder image for seed {seed!r}")
        return stream
