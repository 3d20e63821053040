from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Template

from .external import cmd_to_str

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>ontalign Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    pre { padding: 12px; overflow-x: auto; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
  </style>
</head>
<body>

<h1>ontalign Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>Reference</th><td><code>{{ summary.reference }}</code></td></tr>
      <tr><th>Reads</th><td><code>{{ summary.reads }}</code></td></tr>
      <tr><th>Preset</th><td><code>{{ summary.minimap2_preset }}</code></td></tr>
      <tr><th>Runtime</th><td>{{ "%.1f"|format(summary.runtime_seconds or 0) }} s</td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Outputs</h3>
    <table>
      <tr><th>SAM</th><td><code>{{ summary.out_sam }}</code></td></tr>
      <tr><th>BAM</th><td><code>{{ summary.out_bam }}</code></td></tr>
      <tr><th>BAI</th><td><code>{{ summary.out_bai }}</code></td></tr>
    </table>
  </div>
</div>

{% if stats %}
<h2>Alignment</h2>
<table>
  <tr><th>Total reads</th><td>{{ stats.total }}</td></tr>
  <tr><th>Mapped</th><td>{{ stats.mapped }} ({{ "%.1f"|format(100 * stats.mapped_fraction) }}%)</td></tr>
  <tr><th>Unmapped</th><td>{{ stats.unmapped }}</td></tr>
</table>

<h3>Per contig</h3>
<table>
  <tr><th>Contig</th><th>Length</th><th>Mapped</th><th>Unmapped</th></tr>
  {% for c in stats.contigs %}
  <tr><td><code>{{ c.contig }}</code></td><td>{{ c.length }}</td><td>{{ c.mapped }}</td><td>{{ c.unmapped }}</td></tr>
  {% endfor %}
</table>
{% endif %}

<h2>Commands</h2>
<pre>{{ commands }}</pre>

<hr>
<p class="small">ontalign {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    out_path: str | Path,
    version: str,
    summary: Dict[str, Any],
    stats: Optional[Dict[str, Any]] = None,
) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    commands = " \\\n  | ".join(
        [
            cmd_to_str(summary["cmd_minimap2"]) + " | tee " + cmd_to_str([summary["out_sam"]]),
            cmd_to_str(summary["cmd_samtools_view"]),
            cmd_to_str(summary["cmd_samtools_sort"]),
        ]
    )
    commands += "\n" + cmd_to_str(summary["cmd_samtools_index"])

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        summary=summary,
        stats=stats,
        commands=commands,
    )

    out_path.write_text(html, encoding="utf-8")
    logger.info("Report written: %s", out_path)
    return out_path
