"""Digest email rendering.

Builds the subject, HTML body and plaintext fallback for one digest.
The HTML is self-contained: inline styles and an inline SVG sparkline,
no external scripts, since most mail clients strip them.
"""

import html
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from urllib.parse import urlencode
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from puretrack.digests.config import DigestConfig
from puretrack.digests.schemas import DigestItem, DigestRecord

HEADER_COLORS = {
    "Critical": "#ff4d4f",
    "Warning": "#faad14",
}
DEFAULT_HEADER_COLOR = "#1890ff"

BADGE_COLORS = {
    "Critical": "#dc3545",
    "Warning": "#ffc107",
    "Advisory": "#17a2b8",
}
DEFAULT_BADGE_COLOR = "#6c757d"

SPARKLINE_WIDTH = 600
SPARKLINE_HEIGHT = 120
SPARKLINE_PADDING = 10


@dataclass(frozen=True)
class RenderedDigest:
    """Rendered message ready for a Notifier."""

    subject: str
    html_body: str
    text_body: str


def category_title(category: str) -> str:
    """``ph_high`` -> ``PH HIGH``."""
    return category.replace("_", " ").upper()


def acknowledgement_url(digest: DigestRecord, config: DigestConfig) -> str:
    query = urlencode({"token": digest.ack_token, "id": digest.digest_id})
    return f"{config.ack_base_url}?{query}"


def _display_zone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def format_timestamp(moment: datetime, zone: tzinfo) -> str:
    """``Oct 17, 02:30 PM`` in the display zone."""
    return moment.astimezone(zone).strftime("%b %d, %I:%M %p")


def build_sparkline(values: list[float], color: str) -> str:
    """Inline SVG polyline for a series of values.

    Returns an empty string for fewer than two points.
    """
    if len(values) < 2:
        return ""

    low, high = min(values), max(values)
    span = (high - low) or 1.0
    step = (SPARKLINE_WIDTH - 2 * SPARKLINE_PADDING) / (len(values) - 1)
    usable = SPARKLINE_HEIGHT - 2 * SPARKLINE_PADDING

    points = []
    for i, value in enumerate(values):
        x = SPARKLINE_PADDING + i * step
        y = SPARKLINE_PADDING + usable - (value - low) / span * usable
        points.append(f"{x:.1f},{y:.1f}")

    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{SPARKLINE_WIDTH}" '
        f'height="{SPARKLINE_HEIGHT}" viewBox="0 0 {SPARKLINE_WIDTH} {SPARKLINE_HEIGHT}">'
        f'<polyline fill="none" stroke="{color}" stroke-width="2" '
        f'points="{" ".join(points)}"/>'
        "</svg>"
    )


def _item_row(item: DigestItem, zone: tzinfo) -> str:
    badge = BADGE_COLORS.get(item.severity, DEFAULT_BADGE_COLOR)
    return f"""
      <tr style="border-bottom: 1px solid #e0e0e0;">
        <td style="padding: 12px;">
          <span style="display: inline-block; padding: 4px 8px; border-radius: 4px;
            background: {badge}; color: white; font-size: 11px; font-weight: 600;">
            {html.escape(item.severity)}
          </span>
        </td>
        <td style="padding: 12px;">{html.escape(item.device_name or "Unknown")}</td>
        <td style="padding: 12px;">{html.escape(item.summary)}</td>
        <td style="padding: 12px; color: #666; font-size: 13px;">
          {html.escape(format_timestamp(item.observed_at, zone))}
        </td>
      </tr>"""


def _reminder_text(remaining: int) -> str:
    plural = "" if remaining == 1 else "s"
    return f"You have {remaining} reminder{plural} left"


def render_digest(digest: DigestRecord, config: DigestConfig | None = None) -> RenderedDigest:
    """Render one digest for delivery.

    The attempt number shown is the one about to be made
    (``send_attempts + 1``); the reminder count is what remains before
    this send.

    Args:
        digest: Digest to render.
        config: Digest configuration (ack URL, product name, display zone).

    Returns:
        RenderedDigest with subject, HTML and plaintext bodies.
    """
    config = config or DigestConfig()
    zone = _display_zone(config.display_time_zone)

    title = category_title(digest.category)
    attempt = f"{digest.send_attempts + 1}/{digest.max_attempts}"
    subject = f"Alert Digest: {title} (Attempt {attempt})"

    first_severity = digest.items[0].severity if digest.items else None
    header_color = HEADER_COLORS.get(first_severity, DEFAULT_HEADER_COLOR)

    count = len(digest.items)
    count_text = f"{count} alert{'' if count == 1 else 's'}"
    since = format_timestamp(digest.created_at, zone)
    ack_url = acknowledgement_url(digest, config)
    reminders = _reminder_text(digest.remaining_attempts)
    cooldown = f"{config.cooldown_hours:g} hours"
    product = html.escape(config.product_name)

    rows = "".join(_item_row(item, zone) for item in digest.items)

    values = [item.value for item in digest.items if item.value is not None]
    sparkline = build_sparkline(values, header_color)
    trend_section = ""
    if sparkline:
        parameter = html.escape(digest.items[0].parameter.upper())
        trend_section = f"""
    <div style="padding: 0 24px 24px 24px;">
      <h3 style="color: #333;">Trend Over Time ({parameter})</h3>
      <div style="background: #fafafa; padding: 16px; border-radius: 4px;">{sparkline}</div>
    </div>"""

    html_body = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; background: #f5f5f5; padding: 20px;">
  <div style="max-width: 700px; margin: 0 auto; background: white; border-radius: 8px;
    overflow: hidden; box-shadow: 0 2px 8px rgba(0,0,0,0.1);">
    <div style="background: {header_color}; color: white; padding: 24px;">
      <h2 style="margin: 0;">Water Quality Alert Digest</h2>
      <p style="margin: 8px 0 0 0; opacity: 0.9;">Category: {html.escape(title)}</p>
      <p style="margin: 4px 0 0 0; font-size: 13px; opacity: 0.8;">
        {count_text} aggregated since {html.escape(since)}
      </p>
    </div>
    <div style="padding: 24px;">
      <h3 style="margin-top: 0; color: #333;">Alert Summary</h3>
      <table style="width: 100%; border-collapse: collapse; border: 1px solid #e0e0e0;">
        <thead>
          <tr style="background: #fafafa;">
            <th style="padding: 12px; text-align: left;">Severity</th>
            <th style="padding: 12px; text-align: left;">Device</th>
            <th style="padding: 12px; text-align: left;">Issue</th>
            <th style="padding: 12px; text-align: left;">Time</th>
          </tr>
        </thead>
        <tbody>{rows}
        </tbody>
      </table>
    </div>{trend_section}
    <div style="padding: 0 24px 24px 24px;">
      <div style="background: #fff3cd; border-left: 4px solid #faad14; padding: 16px;
        border-radius: 4px;">
        <h4 style="margin: 0 0 8px 0; color: #856404;">Acknowledge This Digest</h4>
        <p style="margin: 0 0 12px 0; font-size: 14px; color: #856404;">
          Click below to stop receiving this alert.
          You will NOT receive reminders after acknowledgement.
        </p>
        <a href="{html.escape(ack_url, quote=True)}" style="display: inline-block; padding: 10px 20px;
          background: #28a745; color: white; text-decoration: none; border-radius: 4px;
          font-weight: 600;">Acknowledge &amp; Stop Alerts</a>
        <p style="margin: 12px 0 0 0; font-size: 12px; color: #856404;">
          {reminders} (sent every {cooldown} until acknowledged or
          {digest.max_attempts} attempts are reached)
        </p>
      </div>
    </div>
    <div style="background: #f5f5f5; padding: 16px 24px; text-align: center;
      border-top: 1px solid #e0e0e0;">
      <p style="margin: 0; font-size: 12px; color: #999;">
        Automated alert from <strong>{product}</strong> Water Quality Monitoring System<br>
        Attempt {digest.send_attempts + 1} of {digest.max_attempts}
      </p>
    </div>
  </div>
</body>
</html>
"""

    lines = [
        f"Water Quality Alert Digest: {title}",
        f"{count_text} aggregated since {since}",
        "",
    ]
    for item in digest.items:
        when = format_timestamp(item.observed_at, zone)
        lines.append(f"- [{item.severity}] {item.device_name}: {item.summary} ({when})")
    lines += [
        "",
        f"Acknowledge and stop alerts: {ack_url}",
        f"{reminders}.",
        "",
        f"Automated alert from {config.product_name}. Attempt {attempt}.",
    ]

    return RenderedDigest(subject=subject, html_body=html_body, text_body="\n".join(lines))
