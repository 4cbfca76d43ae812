import asyncio
import logging

from fastapi import FastAPI, Response
from fastapi.responses import HTMLResponse
from collector.main import register
from core.config import settings
from core.metrics import catalog
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
import uvicorn
from fastapi.middleware.cors import CORSMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

METRICS_ENDPOINT = "/metrics"

app = FastAPI(title="Ondat Metrics Exporter")


@app.get(METRICS_ENDPOINT)
async def metrics():
    loop = asyncio.get_running_loop()
    # a scrape past the deadline keeps running, its result is dropped
    try:
        data = await asyncio.wait_for(loop.run_in_executor(None, generate_latest, register), timeout=settings.TIMEOUT)
    except asyncio.TimeoutError:
        logger.error("Scrape did not complete within %ss", settings.TIMEOUT)
        return Response(content="scrape timed out\n", status_code=503, media_type="text/plain")
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


@app.get("/healthz")
def healthz():
    return Response(status_code=200)


@app.get("/readyz")
def readyz():
    return Response(status_code=200)


@app.get("/", response_class=HTMLResponse)
def landing_page():
    html = f"""
    <html>
    <head>
        <meta charset="utf-8">
        <title>Metrics exporter</title>
        <style>
            body {{ font-family: Arial, sans-serif; }}
            table {{ border-collapse: collapse; width: 100%; }}
            th, td {{ border: 1px solid #ddd; padding: 8px; }}
            th {{ background-color: #f4f4f4; text-align: left; }}
            tr:hover {{ background-color: #fafafa; }}
        </style>
    </head>
    <body>
        <h1>Metrics exporter</h1>
        <p><a href="{METRICS_ENDPOINT}">Metrics</a></p>
        <table>
            <tr>
                <th>Metric Name</th>
                <th>Type</th>
                <th>Description</th>
            </tr>
    """

    for name, mtype, desc in catalog():
        html += f"""
            <tr>
                <td>{name}</td>
                <td>{mtype}</td>
                <td>{desc}</td>
            </tr>
        """

    html += """
        </table>
    </body>
    </html>
    """

    return HTMLResponse(content=html)


if settings.DEV:
    app.add_middleware(CORSMiddleware, allow_origins=["*"])

if __name__ == "__main__":
    logger.info("Starting http handler on port %d", settings.PORT)
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
