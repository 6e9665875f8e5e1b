"""
Purpose:
- Sanity-check critical library versions after upgrades.
- Import the exact modules we use and print versions so we can spot drift immediately.
"""

import sys
import fastapi
import uvicorn
import httpx
import openai
import PIL
from importlib.metadata import version
from pydantic_settings import BaseSettings
from photocaption.captions.remote import to_data_uri

print("python", sys.version)
print("fastapi", fastapi.__version__)
print("uvicorn", uvicorn.__version__)
print("httpx", httpx.__version__)
print("openai", openai.__version__)
print("pillow", PIL.__version__)
print("rich", version("rich"))
print("tenacity", version("tenacity"))
print("pydantic-settings", BaseSettings.__module__.split(".")[0])  # presence check
# data-URI sniffing is the one thing we do to images locally
print("png_sniff", to_data_uri("iVBORw0KGgo")[:22])
print("OK")
