"""Archive service: bundles rendered sheets for download."""

import io
import json
import logging
import re
import zipfile
from datetime import datetime
from typing import List, Optional

from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from gangsheet_worker.services.packing_service import PackingResult, SheetSettings
from gangsheet_worker.services.render_service import RasterSheet

logger = logging.getLogger(__name__)


class ArchiveService:
    """Build the downloadable archive of a finished gangsheet.

    The zip holds one PNG per sheet, ``manifest.json`` describing every
    placement, a short ``info.txt`` and, optionally, a multi-page PDF proof
    with each sheet at physical size.
    """

    MANIFEST_NAME = "manifest.json"
    INFO_NAME = "info.txt"

    def safe_name(self, name: str) -> str:
        """Make a gangsheet name usable as a file name."""
        cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("._")
        return cleaned or "gangsheet"

    def sheet_filename(self, name: str, sheet_index: int) -> str:
        return f"{self.safe_name(name)}_{sheet_index + 1:03d}.png"

    def archive_filename(self, name: str) -> str:
        return f"{self.safe_name(name)}.zip"

    def build_manifest(
        self,
        gangsheet_id: int,
        tenant_id: int,
        name: str,
        order_ids: List[int],
        settings: SheetSettings,
        packing: PackingResult,
        sheets: List[RasterSheet],
    ) -> dict:
        """Describe the run for operators and downstream tooling."""
        rasters = {sheet.index: sheet for sheet in sheets}
        layout = packing.to_dict()

        for sheet_data in layout["sheets"]:
            raster = rasters.get(sheet_data["index"])
            sheet_data["file_name"] = self.sheet_filename(name, sheet_data["index"])
            if raster:
                sheet_data["width_px"] = raster.width_px
                sheet_data["height_px"] = raster.height_px

        return {
            "gangsheet_id": gangsheet_id,
            "tenant_id": tenant_id,
            "name": name,
            "order_ids": list(order_ids),
            "settings": settings.to_dict(),
            "generated_at": datetime.utcnow().isoformat(),
            "layout": layout,
        }

    def build_proof_pdf(self, name: str, sheets: List[RasterSheet], settings: SheetSettings) -> bytes:
        """Render all sheets as pages of a PDF at physical size."""
        buffer = io.BytesIO()
        page_width = settings.roll_width_in * inch
        page_height = settings.roll_height_in * inch

        c = canvas.Canvas(buffer, pagesize=(page_width, page_height))
        c.setTitle(f"Gangsheet {name}")
        c.setAuthor("Gangsheet Engine")
        c.setSubject(f"{len(sheets)} sheet(s) at {settings.dpi} dpi")

        for sheet in sheets:
            c.drawImage(
                ImageReader(io.BytesIO(sheet.png)),
                0,
                0,
                width=page_width,
                height=page_height,
                mask="auto",
            )
            c.showPage()

        c.save()
        return buffer.getvalue()

    def build_archive(
        self,
        name: str,
        sheets: List[RasterSheet],
        manifest: dict,
        proof_pdf: Optional[bytes] = None,
    ) -> bytes:
        """Zip sheets, manifest, info and the optional PDF proof."""
        buffer = io.BytesIO()

        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for sheet in sheets:
                zf.writestr(self.sheet_filename(name, sheet.index), sheet.png)

            zf.writestr(self.MANIFEST_NAME, json.dumps(manifest, indent=2))
            zf.writestr(self.INFO_NAME, self._info_text(name, sheets, manifest))

            if proof_pdf:
                zf.writestr(f"{self.safe_name(name)}_proof.pdf", proof_pdf)

        content = buffer.getvalue()
        logger.info(f"Built archive for {name}: {len(sheets)} sheet(s), {len(content)} bytes")
        return content

    def _info_text(self, name: str, sheets: List[RasterSheet], manifest: dict) -> str:
        order_ids = manifest.get("order_ids", [])
        lines = [
            f"Gangsheet: {name}",
            f"Generated: {manifest.get('generated_at', '')}",
            f"Total sheets: {len(sheets)}",
            f"Total designs: {sum(s.design_count for s in sheets)}",
            f"Orders: {', '.join(str(o) for o in order_ids)}",
        ]
        return "\n".join(lines) + "\n"
