from __future__ import annotations

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from stitch_pipeline.errors import PatternGenerationError
from stitch_pipeline.models import GenerationSettings, MatchingMethod
from stitch_pipeline.palette import default_palette
from stitch_pipeline.pipeline import PatternGenerationPipeline


class GenerateRequest(BaseModel):
    image_url: str = Field(..., description="HTTP(S) image URL")
    target_width: int = Field(default=200, ge=1, le=2000, description="Width in stitches")
    target_height: int = Field(default=250, ge=1, le=2000, description="Height in stitches")
    maintain_aspect_ratio: bool = Field(
        default=True,
        description="Fit the pattern inside the target box keeping the image aspect ratio",
    )
    max_colors: int = Field(default=40, ge=1, le=256, description="Maximum thread colors")
    method: MatchingMethod = Field(
        default=MatchingMethod.CIELAB, description="Color distance used for matching"
    )
    include_grid: bool = Field(
        default=True, description="Return the stitch grid as rows of thread codes"
    )


class ThreadItem(BaseModel):
    code: str
    name: str
    hex: str


class PaletteItem(ThreadItem):
    symbol: str
    stitch_count: int


class GenerateResponse(BaseModel):
    width: int
    height: int
    total_stitches: int
    palette: list[PaletteItem]
    grid: list[list[str | None]] | None


app = FastAPI(
    title="Stitch Pattern API",
    version="1.0.0",
    description="Convert an image URL into a counted cross-stitch pattern of thread colors.",
)


def _build_pipeline() -> PatternGenerationPipeline:
    return PatternGenerationPipeline(palette=default_palette())


@app.post("/generate", response_model=GenerateResponse)
async def generate_pattern(payload: GenerateRequest) -> GenerateResponse:
    pipeline = _build_pipeline()
    settings = GenerationSettings(
        target_width=payload.target_width,
        target_height=payload.target_height,
        maintain_aspect_ratio=payload.maintain_aspect_ratio,
        max_colors=payload.max_colors,
        method=payload.method,
    )
    try:
        pattern = await run_in_threadpool(pipeline.run, payload.image_url, settings)
    except PatternGenerationError as exc:
        raise HTTPException(
            status_code=400, detail=f"failed_to_generate_pattern: {exc}"
        ) from exc
    except OSError as exc:
        raise HTTPException(
            status_code=400, detail=f"failed_to_read_image: {exc}"
        ) from exc

    grid = None
    if payload.include_grid:
        grid = [
            [None if stitch is None else stitch.thread.code for stitch in row]
            for row in pattern.stitches
        ]

    return GenerateResponse(
        width=pattern.width,
        height=pattern.height,
        total_stitches=pattern.total_stitch_count,
        palette=[
            PaletteItem(
                code=entry.thread.code,
                name=entry.thread.name,
                hex=entry.thread.hex,
                symbol=entry.symbol,
                stitch_count=entry.stitch_count,
            )
            for entry in pattern.palette
        ],
        grid=grid,
    )


@app.get("/threads", response_model=list[ThreadItem])
async def search_threads(query: str = Query(default="", max_length=64)) -> list[ThreadItem]:
    return [
        ThreadItem(code=thread.code, name=thread.name, hex=thread.hex)
        for thread in default_palette().search(query)
    ]
