from fastapi import FastAPI, APIRouter, HTTPException, Depends
from fastapi.responses import HTMLResponse, Response
from starlette.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient
import asyncio
import logging
from pydantic import BaseModel, Field, ConfigDict, ValidationError
from typing import Any, Dict, Literal, Optional

from proforma import __version__
from proforma.config import Config
from proforma.data.sample_invoice import sample_document
from proforma.settings_store import SettingsStore
from proforma.assets.pdf.document import InvoiceDocument
from proforma.assets.pdf.errors import ExportError, PresetNotFoundError, UnknownSettingError
from proforma.assets.pdf.htmlPdfEngine import render_preview_html
from proforma.assets.pdf.layoutEngine import CONTAINER_ID, render
from proforma.assets.pdf.pdfEngine import PdfExportPipeline, render_thumbnail
from proforma.assets.pdf.presets import apply_preset, get_preset, list_presets
from proforma.assets.pdf.settings import TemplateSettings, move_section, resolve, update_field

# MongoDB connection
client = AsyncIOMotorClient(Config.MONGO_URL)
db = client[Config.DB_NAME]

# Create the main app without a prefix
app = FastAPI(title="Proforma PDF Engine", version=__version__)

# Create a router with the /api prefix
api_router = APIRouter(prefix="/api")

# Configure logging
logging.basicConfig(
    level=Config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

export_pipeline = PdfExportPipeline()


def get_settings_store() -> SettingsStore:
    return SettingsStore(db[Config.SETTINGS_COLLECTION])


def get_export_pipeline() -> PdfExportPipeline:
    return export_pipeline


# ==================== MODELS ====================

class RenderRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    document: Optional[InvoiceDocument] = None  # sample invoice when omitted
    settings: Optional[Dict[str, Any]] = None  # partial, applied over the account's settings
    account_id: Optional[str] = None


class PdfRequest(RenderRequest):
    encoding: Literal["file", "base64"] = "file"
    element_id: str = CONTAINER_ID


class ThumbnailRequest(RenderRequest):
    width: Optional[int] = Field(default=None, ge=60, le=1200)


class FieldUpdate(BaseModel):
    value: Any = None


class SectionMove(BaseModel):
    section_id: str
    index: int = Field(ge=0)


# ==================== HELPERS ====================

async def load_settings(store: SettingsStore, account_id: Optional[str],
                        inline: Optional[Dict[str, Any]] = None) -> TemplateSettings:
    """Stored settings for the account (defaults when absent) with inline overrides on top"""
    stored = await store.get(account_id) if account_id else None
    settings = resolve(stored)
    if inline:
        settings = resolve({**settings.model_dump(), **inline})
    return settings


async def _request_context(request: RenderRequest, store: SettingsStore):
    settings = await load_settings(store, request.account_id, request.settings)
    return request.document or sample_document(), settings


# ==================== TEMPLATE PRESETS ====================

@api_router.get("/template-presets")
async def get_template_presets():
    """Get all template presets"""
    return [preset.model_dump() for preset in list_presets()]


# ==================== PDF SETTINGS ====================

@api_router.get("/pdf-settings/{account_id}")
async def get_pdf_settings(account_id: str, store: SettingsStore = Depends(get_settings_store)):
    """Get resolved template settings, defaults when nothing is stored"""
    try:
        return resolve(await store.get(account_id)).model_dump()
    except Exception as e:
        logger.error(f"Error loading settings for {account_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@api_router.put("/pdf-settings/{account_id}")
async def save_pdf_settings(account_id: str, body: Dict[str, Any],
                            store: SettingsStore = Depends(get_settings_store)):
    """Replace the whole settings record"""
    try:
        settings = await store.upsert(account_id, resolve(body))
        return settings.model_dump()
    except Exception as e:
        logger.error(f"Error saving settings for {account_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@api_router.patch("/pdf-settings/{account_id}/fields/{key}")
async def update_pdf_setting(account_id: str, key: str, update: FieldUpdate,
                             store: SettingsStore = Depends(get_settings_store)):
    """Update a single settings field"""
    try:
        current = resolve(await store.get(account_id))
        settings = resolve(update_field(current, key, update.value))
        await store.upsert(account_id, settings)
        return settings.model_dump()
    except UnknownSettingError:
        raise HTTPException(status_code=404, detail=f"Unknown setting: {key}")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid value for {key}: {e.errors()[0]['msg']}")
    except Exception as e:
        logger.error(f"Error updating {key} for {account_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@api_router.post("/pdf-settings/{account_id}/presets/{preset_id}")
async def apply_template_preset(account_id: str, preset_id: str,
                                store: SettingsStore = Depends(get_settings_store)):
    """Replace the account's settings with a preset"""
    try:
        settings = await store.upsert(account_id, apply_preset(get_preset(preset_id)))
        return settings.model_dump()
    except PresetNotFoundError:
        raise HTTPException(status_code=404, detail=f"Template preset not found: {preset_id}")
    except Exception as e:
        logger.error(f"Error applying preset {preset_id} for {account_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@api_router.post("/pdf-settings/{account_id}/section-order")
async def reorder_section(account_id: str, move: SectionMove,
                          store: SettingsStore = Depends(get_settings_store)):
    """Move one section to a new position"""
    try:
        current = resolve(await store.get(account_id))
        order = move_section(current.section_order, move.section_id, move.index)
        settings = await store.upsert(account_id, update_field(current, "section_order", order))
        return {"section_order": settings.section_order}
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Error reordering sections for {account_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# ==================== PREVIEW ====================

@api_router.post("/preview/html", response_class=HTMLResponse)
async def preview_html(request: RenderRequest, store: SettingsStore = Depends(get_settings_store)):
    """Full-size HTML preview"""
    try:
        doc, settings = await _request_context(request, store)
        html = await asyncio.to_thread(render_preview_html, doc, settings)
        return HTMLResponse(html)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error rendering preview: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@api_router.post("/preview/thumbnail")
async def preview_thumbnail(request: ThumbnailRequest, store: SettingsStore = Depends(get_settings_store)):
    """First page thumbnail as PNG"""
    try:
        doc, settings = await _request_context(request, store)
        png = await asyncio.to_thread(render_thumbnail, doc, settings, request.width)
        return Response(content=png, media_type="image/png", headers={"Cache-Control": "no-cache"})
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error rendering thumbnail: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# ==================== PDF EXPORT ====================

@api_router.post("/invoices/pdf")
async def export_invoice_pdf(request: PdfRequest,
                             store: SettingsStore = Depends(get_settings_store),
                             pipeline: PdfExportPipeline = Depends(get_export_pipeline)):
    """Generate the invoice PDF as a download or as base64 JSON"""
    try:
        doc, settings = await _request_context(request, store)
        rendered = render(doc, settings)
        artifact = await pipeline.export(rendered, request.element_id, encoding=request.encoding)

        if request.encoding == "base64":
            return {
                "filename": artifact.filename,
                "media_type": artifact.media_type,
                "page_count": artifact.page_count,
                "content_base64": artifact.payload,
            }

        return Response(
            content=artifact.payload,
            media_type=artifact.media_type,
            headers={
                "Content-Disposition": f"attachment; filename={artifact.filename}",
                "Cache-Control": "no-cache",
                "X-Page-Count": str(artifact.page_count),
            }
        )
    except HTTPException:
        raise
    except ExportError as e:
        logger.error(f"PDF export failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(f"Error generating PDF: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# ==================== ROOT ENDPOINTS ====================

@api_router.get("/")
async def root():
    return {"message": "Proforma PDF Engine API", "version": __version__}


@api_router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "proforma-pdf-engine"}


# Include the router in the main app
app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=Config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("shutdown")
async def shutdown_db_client():
    client.close()
