"""Report builder — text and JSON output for fidelity-check results."""

import json
from typing import Any

from fidelity_checker.core.codec import bytes_to_data_url
from fidelity_checker.core.types import PRIORITIES, ComparisonResult

REPORT_VERSION = '1.0'


def format_text(result: ComparisonResult, design_path: str | None = None, impl_path: str | None = None) -> str:
    """Format a comparison as human-readable text."""
    meta = result.metadata
    lines = []
    header = 'fidelity-check'
    if design_path and impl_path:
        header += f': {design_path} vs {impl_path}'
    if meta.screen_name:
        header += f' [{meta.screen_name}]'
    lines.append(header)
    lines.append(
        f'canvas {meta.target_dimensions} ({meta.sizing_mode})'
        f'  design {meta.design_dimensions}  implementation {meta.implementation_dimensions}'
    )
    lines.append(f'similarity {result.similarity:.2f}%  ({result.diff_pixel_count} pixels differ)')

    warning = result.viewport_warning
    if warning is not None:
        lines.append('')
        lines.append(f'WARNING width ratio {warning.width_ratio}, aspect delta {warning.aspect_ratio_delta}')
        lines.append(f'  {warning.suggestion}')

    lines.append('')
    if not result.mismatches:
        lines.append('No significant mismatches.')
    for m in result.mismatches:
        b = m.bbox
        lines.append(f'── {m.priority.upper():<6} {m.id} {m.title} [{b.x},{b.y} {b.width}×{b.height}]')
        lines.append(f'  {m.category}, {m.priority} priority')
        lines.append(f'  {m.explanation}')
        lines.append(f'  fix: {m.suggested_fix}')
        lines.append('')

    if result.mismatches:
        counts = {p: sum(1 for m in result.mismatches if m.priority == p) for p in PRIORITIES}
        lines.append(f'{len(result.mismatches)} mismatches  HIGH {counts["high"]}  MEDIUM {counts["medium"]}  LOW {counts["low"]}')
    return '\n'.join(lines)


def format_json(result: ComparisonResult, diff_image_path: str | None = None) -> str:
    """Format a comparison as JSON using the contract field names.

    The diff image is embedded as a PNG data URL under `diffImageUrl`;
    `diffImage` additionally names the file it was written to, if any.
    """
    obj: dict[str, Any] = {'version': REPORT_VERSION}
    obj.update(result.to_dict())
    if result.diff_png:
        obj['diffImageUrl'] = bytes_to_data_url(result.diff_png)
    if diff_image_path:
        obj['diffImage'] = diff_image_path
    return json.dumps(obj, indent=2, ensure_ascii=False)
