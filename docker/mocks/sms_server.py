"""
SMS Gateway Mock: accepts POST /send with {"phone", "message"} and records it.
Numbers ending in '0000' are rejected with 502 to exercise the failure path.
GET /outbox returns everything received so far.
Listens on port 8003.
"""

import json
from http.server import BaseHTTPRequestHandler, HTTPServer

OUTBOX = []


class SMSHandler(BaseHTTPRequestHandler):
    def do_POST(self):
        if self.path.rstrip("/") != "/send":
            self._respond(404, {"error": "Not found"})
            return
        length = int(self.headers.get("Content-Length", 0))
        try:
            body = json.loads(self.rfile.read(length) or b"{}")
        except ValueError:
            self._respond(400, {"error": "Invalid JSON"})
            return
        phone, message = body.get("phone", ""), body.get("message", "")
        if not phone or not message:
            self._respond(400, {"error": "phone and message are required"})
        elif phone.endswith("0000"):
            self._respond(502, {"error": "Carrier rejected number"})
        else:
            OUTBOX.append({"phone": phone, "message": message})
            self._respond(200, {"status": "queued", "id": len(OUTBOX)})

    def do_GET(self):
        if self.path.rstrip("/") == "/outbox":
            self._respond(200, {"messages": OUTBOX})
        else:
            self._respond(404, {"error": "Not found"})

    def _respond(self, code, data):
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.end_headers()
        self.wfile.write(json.dumps(data).encode())

    def log_message(self, *_):
        pass


if __name__ == "__main__":
    server = HTTPServer(("0.0.0.0", 8003), SMSHandler)
    print("SMS Gateway Mock running on :8003")
    server.serve_forever()
