"""
Chart Utilities Module
Bar chart rendering to PNG using matplotlib.
"""

import io
import logging
from typing import List, Optional
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt

from .models import ChartPoint

logger = logging.getLogger(__name__)


class ChartGenerator:
    """Renders bar charts as PNG bytes."""

    def __init__(self, dpi: int = 100):
        self.dpi = dpi

    def bar_chart_png(self, series: List[ChartPoint], title: Optional[str] = None,
                      width: int = 800, height: int = 600) -> bytes:
        """
        Render a bar chart.

        Args:
            series: Points given as {label, value} or {x, y}
            title: Optional chart title
            width: Image width in pixels
            height: Image height in pixels

        Returns:
            PNG image bytes
        """
        labels = [p.display_label for p in series]
        values = [p.numeric_value for p in series]

        fig, ax = plt.subplots(figsize=(width / self.dpi, height / self.dpi), dpi=self.dpi)
        try:
            ax.bar(range(len(values)), values, label=title or 'Data')
            ax.set_xticks(range(len(labels)))
            ax.set_xticklabels(labels, rotation=45, ha='right')
            if title:
                ax.set_title(title)
            fig.tight_layout()
            buf = io.BytesIO()
            fig.savefig(buf, format='png', dpi=self.dpi)
        finally:
            plt.close(fig)
        logger.info(f"Rendered bar chart with {len(series)} bars")
        return buf.getvalue()
