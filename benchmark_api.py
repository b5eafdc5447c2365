import json
import time
from pathlib import Path

import httpx

SUPPORTED_SUFFIXES = [".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp", ".tiff"]


def run_benchmark():
    api_url = "http://localhost:8000/enhance"
    image_dir = Path("./sample_images")
    output_dir = Path("./enhanced_images")
    output_dir.mkdir(exist_ok=True)

    images = sorted(image_dir.glob("*"))
    results = []

    with httpx.Client(timeout=30) as client:
        for img_path in images:
            if img_path.suffix.lower() not in SUPPORTED_SUFFIXES:
                continue

            print(f"Processing {img_path.name}...")

            try:
                start = time.time()
                with open(img_path, "rb") as f:
                    response = client.post(api_url, files={"file": (img_path.name, f)})
                elapsed_ms = int((time.time() - start) * 1000)

                if response.status_code == 200:
                    suffix = ".png" if response.headers["content-type"] == "image/png" else ".jpg"
                    out_path = output_dir / f"{img_path.stem}_enhanced{suffix}"
                    out_path.write_bytes(response.content)

                    results.append({
                        "filename": img_path.name,
                        "status": response.status_code,
                        "content_type": response.headers["content-type"],
                        "input_bytes": img_path.stat().st_size,
                        "output_bytes": len(response.content),
                        "latency_ms": elapsed_ms,
                        "server_time_s": float(response.headers.get("x-process-time", 0)),
                    })
                else:
                    print(f"Error from API for {img_path.name}: {response.status_code} - {response.text}")
                    results.append({
                        "filename": img_path.name,
                        "status": response.status_code,
                        "error": response.text,
                        "latency_ms": elapsed_ms,
                    })

            except httpx.HTTPError as e:
                print(f"Error processing {img_path.name}: {str(e)}")
                results.append({
                    "filename": img_path.name,
                    "status": "ERROR",
                    "error": str(e)
                })

    with open("benchmark_results.json", "w") as f:
        json.dump(results, f, indent=2)

    print(f"Benchmark complete. Results saved to benchmark_results.json")


if __name__ == "__main__":
    run_benchmark()
