"""Simulate a complete tenant inspection against a running Roomcheck server.

Opens the entry link for a flow, marks every checklist area (one as a
problem with a note and a generated photo), signs, confirms and submits,
printing each step. Works with the mock backend out of the box.

Usage:
    uvicorn roomcheck.main:app &
    python scripts/simulate_inspection.py --flow B503
"""

import argparse
import asyncio
import base64
from io import BytesIO

import httpx
from PIL import Image, ImageDraw

PROBLEM_AREA = "AC"
PROBLEM_NOTE = "Remote missing, unit drips water when running."


def make_photo(width: int = 2400, height: int = 1800) -> bytes:
    """A phone-sized test photo, well above the pipeline's max width."""
    img = Image.new("RGB", (width, height), color=(196, 204, 212))
    draw = ImageDraw.Draw(img)
    for x in range(0, width, 120):
        draw.line([(x, 0), (x, height)], fill=(150, 160, 170), width=4)
    draw.rectangle([width // 3, height // 3, width // 2, height // 2], fill=(120, 80, 60))
    buf = BytesIO()
    img.save(buf, "JPEG", quality=92)
    return buf.getvalue()


def make_signature() -> str:
    img = Image.new("RGBA", (400, 120), (255, 255, 255, 0))
    ImageDraw.Draw(img).line([(20, 90), (120, 30), (220, 90), (380, 40)], fill=(20, 20, 20, 255), width=5)
    buf = BytesIO()
    img.save(buf, "PNG")
    return "data:image/png;base64," + base64.standard_b64encode(buf.getvalue()).decode("ascii")


async def main(base_url: str, flow_id: str):
    print("=== Roomcheck Inspection Simulator ===\n")
    async with httpx.AsyncClient(base_url=base_url, timeout=60, follow_redirects=True) as client:
        # 1. Entry link
        print(f"1. Opening entry link for {flow_id}...")
        r = await client.get("/inspect", params={"flowId": flow_id})
        r.raise_for_status()
        ws = r.json()
        if ws["phase"] != "resolved":
            print(f"   Could not open inspection: {ws['error']['message']}")
            return
        ws_id = ws["id"]
        s = ws["session"]
        print(f"   Room {s['room_id']} (building {s['building']}, floor {s['floor']}), view: {ws['view']}\n")

        # 2. Switch from the flow summary to the form when the flow has tasks
        if ws["view"] == "flow_summary":
            inspection = next(t for t in ws["flow"]["tasks"] if t["type"] == "INSPECTION")
            r = await client.post(f"/api/workspaces/{ws_id}/tasks/{inspection['task_id']}/open")
            r.raise_for_status()
            print(f"2. Opened task {inspection['task_id']} -> {r.json()['view']}\n")
        else:
            print("2. No task flow, going straight to the form\n")

        # 3. Walk the checklist
        print("3. Checking areas...")
        for area in ws["form"]["areas"]:
            area_id = area["area_id"]
            status = "problem" if area_id == PROBLEM_AREA else "ok"
            r = await client.put(f"/api/workspaces/{ws_id}/areas/{area_id}/status", json={"status": status})
            r.raise_for_status()
            if status == "problem":
                await client.put(f"/api/workspaces/{ws_id}/areas/{area_id}/note", json={"note": PROBLEM_NOTE})
                photo = make_photo()
                r = await client.post(
                    f"/api/workspaces/{ws_id}/areas/{area_id}/attachments",
                    files={"file": ("ac.jpg", photo, "image/jpeg")},
                )
                r.raise_for_status()
                att = r.json()["attachments"][0]
                print(f"   {area['label']}: problem, photo {len(photo) // 1024}KB -> {att['size'] // 1024}KB")
            else:
                print(f"   {area['label']}: ok")

        # 4. Sign-off
        print("\n4. Signing...")
        await client.put(f"/api/workspaces/{ws_id}/details", json={"inspector_name": "Sim Tenant"})
        r = await client.put(f"/api/workspaces/{ws_id}/signature", json={"image": make_signature()})
        r.raise_for_status()
        report = (await client.post(f"/api/workspaces/{ws_id}/validate", json={"confirmed": True})).json()
        print(f"   Ready: {report['ready']} {report['message']}")

        # 5. Submit
        print("\n5. Submitting...")
        r = await client.post(f"/api/workspaces/{ws_id}/submit", json={"confirmed": True})
        if r.status_code != 200:
            print(f"   Submission failed ({r.status_code}): {r.json()['message']}")
            return
        result = r.json()
        print("\n=== Simulation Complete ===")
        print(f"Room:  {result['room_id']}")
        print(f"PDF:   {result['pdf_url']}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run one inspection end to end")
    parser.add_argument("--base-url", default="http://127.0.0.1:8000")
    parser.add_argument("--flow", default="B503")
    args = parser.parse_args()
    asyncio.run(main(args.base_url, args.flow))
