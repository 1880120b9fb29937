# backend/payload_builder.py

import copy
from typing import Any, Dict, Optional

# Tuning used by the single-image proxy route only; the batch form sends
# bare width/height.
MODEL_PARAMS: Dict[str, Dict[str, Any]] = {
    "stabilityai/stable-diffusion-xl-base-1.0": {
        "negative_prompt": "blurry, bad quality, distorted",
        "num_inference_steps": 30,
        "guidance_scale": 7.5,
    },
    "stabilityai/stable-diffusion-xl-refiner-1.0": {
        "negative_prompt": "blurry, bad quality, distorted, low resolution",
        "num_inference_steps": 20,
        "guidance_scale": 7.0,
        "scheduler": "DPMSolverMultistep",
    },
    "stabilityai/stable-diffusion-2-1": {
        "negative_prompt": "blurry, bad quality, distorted, low resolution, ugly",
        "num_inference_steps": 25,
        "guidance_scale": 7.5,
        "scheduler": "DPMSolverMultistep",
    },
    "runwayml/stable-diffusion-v1-5": {
        "negative_prompt": "blurry",
        "num_inference_steps": 20,
        "guidance_scale": 7.0,
    },
}


def get_model_params(model_id: str) -> Dict[str, Any]:
    """Tuning for `model_id`, or an empty dict for models without a preset."""
    return copy.deepcopy(MODEL_PARAMS.get(model_id, {}))


def build_payload(
    prompt: str,
    width: int,
    height: int,
    extra_params: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build the JSON body for one text-to-image call:
    - `inputs` is the raw prompt
    - `parameters` holds the model tuning plus width/height (width/height win)
    - caching is disabled and the endpoint waits for cold models
    """
    parameters: Dict[str, Any] = dict(extra_params or {})
    parameters["width"] = width
    parameters["height"] = height

    return {
        "inputs": prompt,
        "parameters": parameters,
        "options": {
            "wait_for_model": True,
            "use_cache": False,
        },
    }


def build_headers(api_key: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "X-use-cache": "false",
    }
