"""
Resource statistics maths and aggregation for dockdash.

This module turns raw Docker stats documents into percentages, folds a
StatsSnapshot into the tick Summary, and renders the ASCII bars used by the
stats region of the view.

Features:
- CPU percentage (same formula as `docker stats`)
- Memory percentage of the container limit, page cache excluded
- Tick aggregation: container count, total CPU, total memory
- ASCII bar rendering

Architecture:
- summarize(): pure fold used by the reconciler on every tick
- calculate_cpu_percent() / calculate_mem_percent(): used by StatsWorker
- ChartRenderer: ASCII chart generation
"""

from typing import Any, Dict, List, Optional

from .model import StatsSnapshot, Summary


def summarize(container_count: int, snapshot: Optional[StatsSnapshot]) -> Summary:
    """Aggregate the latest snapshot; totals are zero until a sample arrives."""
    if snapshot is None:
        return Summary(container_count=container_count)
    return Summary(
        container_count=container_count,
        total_cpu=sum(snapshot.cpu),
        total_mem=sum(snapshot.mem),
    )


def calculate_cpu_percent(stats: Dict[str, Any]) -> float:
    cpu_stats = stats.get('cpu_stats', {})
    precpu_stats = stats.get('precpu_stats', {})
    cpu_usage = cpu_stats.get('cpu_usage', {}).get('total_usage', 0)
    precpu_usage = precpu_stats.get('cpu_usage', {}).get('total_usage', 0)
    system_cpu_usage = cpu_stats.get('system_cpu_usage', 0)
    presystem_cpu_usage = precpu_stats.get('system_cpu_usage', 0)
    online_cpus = cpu_stats.get('online_cpus') or len(cpu_stats.get('cpu_usage', {}).get('percpu_usage') or []) or 1
    cpu_delta = cpu_usage - precpu_usage
    system_delta = system_cpu_usage - presystem_cpu_usage
    if system_delta > 0.0 and cpu_delta > 0.0:
        return (cpu_delta / system_delta) * online_cpus * 100.0
    return 0.0


def calculate_mem_percent(stats: Dict[str, Any]) -> float:
    memory_stats = stats.get('memory_stats', {})
    usage = memory_stats.get('usage', 0)
    limit = memory_stats.get('limit', 0)
    if not limit:
        return 0.0
    # cgroup v1 reports "cache", cgroup v2 "inactive_file"
    detail = memory_stats.get('stats', {})
    cache = detail.get('inactive_file', detail.get('cache', 0))
    used = max(usage - cache, 0)
    return used / limit * 100.0


class ChartRenderer:
    """Generates ASCII charts for statistics visualization."""

    @staticmethod
    def bar(value: float, width: int, scale: float = 100.0) -> str:
        """Horizontal bar of `width` cells for a value out of `scale`."""
        if width <= 0 or scale <= 0:
            return ""
        filled = int(round(min(max(value, 0.0), scale) / scale * width))
        return "█" * filled + "·" * (width - filled)

    @staticmethod
    def bar_chart(labels: List[str], values: List[float], width: int = 20, label_width: int = 12) -> List[str]:
        """One line per value: label, bar, value in percent."""
        if not values:
            return ["No data available"]
        lines = []
        for label, value in zip(labels, values):
            bar = ChartRenderer.bar(value, width)
            lines.append(f"{label[:label_width]:<{label_width}} {bar} {value:5.1f}%")
        return lines
