"""HTTP shim over the MCP tools for harnesses that only speak plain REST."""
import time
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from latency_mcp import mcp_app

app = FastAPI(title="latency-mcp-shim")

# ----------------- API Models -----------------

class HelperInfo(BaseModel):
    helper: str
    label: str
    metrics: List[str]

class CollectRequest(BaseModel):
    since_ms: Optional[int] = None

class ParseRequest(BaseModel):
    text: str

class LatencyMetricsResponse(BaseModel):
    helper: str
    label: str
    metrics: Dict[str, int]
    missing: List[str] = []
    window_start_ms: Optional[int] = None
    elapsed_ms: Optional[int] = None


def _raise_for_error(body: dict):
    err = body.get('error')
    if err == 'unknown_helper':
        raise HTTPException(status_code=404, detail=body.get('detail'))
    if err == 'invalid_window':
        raise HTTPException(status_code=400, detail=body.get('detail'))
    if err == 'acquisition_failed':
        raise HTTPException(status_code=502, detail=body.get('detail'))
    if err:
        raise HTTPException(status_code=400, detail=body.get('detail') or err)


@app.get("/healthz")
def healthz():
    return {"status": "ok", "service": "latency-mcp-shim", "time": int(time.time() * 1000)}

@app.get("/helpers", response_model=List[HelperInfo])
def list_helpers():
    return mcp_app._list_helpers_impl()

@app.post("/latency/{helper}/collect", response_model=LatencyMetricsResponse)
def collect(helper: str, req: CollectRequest):
    body = mcp_app._collect_impl(helper, req.since_ms)
    _raise_for_error(body)
    return body

@app.post("/latency/{helper}/parse", response_model=LatencyMetricsResponse)
def parse(helper: str, req: ParseRequest):
    body = mcp_app._parse_capture_impl(helper, req.text)
    _raise_for_error(body)
    return body
