import logging
import os
from io import BytesIO

from flask import (
    Flask,
    jsonify,
    render_template_string,
    request,
    send_file,
    url_for,
)

from qr_compose import AssetDecodeError, compose_png
from qr_request import (
    DEFAULT_BACKGROUND,
    DEFAULT_CENTER_TEXT_COLOR,
    DEFAULT_CENTER_TEXT_SIZE,
    DEFAULT_FOREGROUND,
    ValidationError,
    parse_generation_request,
)

logger = logging.getLogger(__name__)

app = Flask(__name__)

SIZE_CHOICES = (256, 512, 1024)


@app.route("/health", methods=["GET"])
def health_check():
    return jsonify({"status": "ok"}), 200


@app.route("/", methods=["GET"])
def index():
    template = """
    <!doctype html>
    <html lang="en">
    <head>
        <meta charset="utf-8" />
        <title>Easy QR Code Generator</title>
        <style>
            body { font-family: Arial, sans-serif; margin: 4rem 2rem; text-align: center; }
            p { color: #555; }
            a.button { display: inline-block; margin-top: 1rem; padding: 0.75rem 1.5rem;
                       background: #2563eb; color: #fff; text-decoration: none; border-radius: 0.5rem; }
        </style>
    </head>
    <body>
        <h1>Easy QR Code Generator</h1>
        <p>Create colored, logo and background-based QR codes instantly.</p>
        <a class="button" href="{{ url_for('generate_form') }}">Open QR Generator</a>
    </body>
    </html>
    """
    return render_template_string(template)


@app.route("/api/generate-qr", methods=["POST"])
def generate_qr():
    payload = request.get_json(silent=True) or {}

    try:
        generation = parse_generation_request(payload)
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400

    logger.info(
        "Generating %s QR code (%dpx)", generation.mode.value, generation.pixel_size
    )

    try:
        png = compose_png(generation)
    except AssetDecodeError as exc:
        return jsonify({"error": str(exc)}), 500
    except Exception as exc:
        logger.exception("Error generating QR code")
        return jsonify({"error": str(exc) or "Failed to generate QR code"}), 500

    response = send_file(
        BytesIO(png),
        mimetype="image/png",
        as_attachment=False,
        download_name="qrcode.png",
    )
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    return response


@app.route("/generate", methods=["GET"])
def generate_form():
    template = """
    <!doctype html>
    <html lang="en">
    <head>
        <meta charset="utf-8" />
        <title>QR Code Generator</title>
        <style>
            body { font-family: Arial, sans-serif; margin: 2rem; }
            label { display: block; margin-bottom: 0.5rem; }
            input, select, textarea { padding: 0.5rem; width: 24rem; max-width: 100%; margin-bottom: 1rem; }
            input[type=color] { width: 4rem; padding: 0; height: 2.5rem; }
            input[type=checkbox] { width: auto; }
            button { padding: 0.5rem 1rem; cursor: pointer; }
            .preview { border: 1px solid #ccc; padding: 1.5rem; max-width: 30rem; margin-top: 2rem; }
            .error { color: #b00020; }
            .hidden { display: none; }
        </style>
    </head>
    <body>
        <h1>QR Code Generator</h1>
        <form id="qr-form">
            <label>
                QR Code Type:
                <select name="type" id="type">
                    <option value="text">Text QR</option>
                    <option value="url">URL QR</option>
                    <option value="logo">Logo QR</option>
                    <option value="background">Background QR</option>
                </select>
            </label>
            <label id="text-field">
                <span id="text-label">Text:</span>
                <textarea name="text" id="text" rows="3" placeholder="Enter text for QR code"></textarea>
            </label>
            <label id="url-field" class="hidden">
                URL:
                <input type="url" name="url" id="url" placeholder="https://example.com" />
            </label>
            <label id="logo-field" class="hidden">
                Logo Image:
                <input type="file" id="logo" accept="image/*" />
            </label>
            <label id="bg-field" class="hidden">
                Background Image:
                <input type="file" id="bgImage" accept="image/*" />
            </label>
            <label>
                QR Color:
                <input type="color" name="color" value="{{ foreground }}" />
            </label>
            <label>
                Background Color:
                <input type="color" name="backgroundColor" value="{{ background }}" />
            </label>
            <label>
                Size:
                <select name="size">
                {% for choice in sizes %}
                    <option value="{{ choice }}" {% if choice == 512 %}selected{% endif %}>{{ choice }}px</option>
                {% endfor %}
                </select>
            </label>
            <label>
                Center Text (optional):
                <textarea name="centerText" rows="2" placeholder="Shown on a badge in the middle"></textarea>
            </label>
            <label>
                Center Text Color:
                <input type="color" name="centerTextColor" value="{{ center_text_color }}" />
            </label>
            <label>
                Center Text Size:
                <input type="number" name="centerTextSize" min="8" max="96" value="{{ center_text_size }}" />
            </label>
            <label>
                <input type="checkbox" name="centerTextBold" /> Bold center text
            </label>
            <button type="submit" id="submit">Generate QR Code</button>
        </form>

        <p class="error" id="error"></p>

        <div class="preview hidden" id="preview">
            <h2>QR Code Preview</h2>
            <img id="qr-image" alt="QR Code" />
            <p><a id="download" download="qrcode.png">Download PNG</a></p>
        </div>

        <script>
            const form = document.getElementById("qr-form");
            const typeSelect = document.getElementById("type");

            function toggleFields() {
                const type = typeSelect.value;
                const composite = type === "logo" || type === "background";
                document.getElementById("text-field").classList.toggle("hidden", type === "url");
                document.getElementById("text-label").textContent = composite ? "Content (Text or URL):" : "Text:";
                document.getElementById("url-field").classList.toggle("hidden", type !== "url");
                document.getElementById("logo-field").classList.toggle("hidden", type !== "logo");
                document.getElementById("bg-field").classList.toggle("hidden", type !== "background");
            }

            function fileToBase64(file) {
                return new Promise((resolve, reject) => {
                    const reader = new FileReader();
                    reader.onload = () => resolve(reader.result.split(",")[1]);
                    reader.onerror = reject;
                    reader.readAsDataURL(file);
                });
            }

            typeSelect.addEventListener("change", toggleFields);
            toggleFields();

            form.addEventListener("submit", async (event) => {
                event.preventDefault();
                const errorBox = document.getElementById("error");
                const button = document.getElementById("submit");
                errorBox.textContent = "";
                button.disabled = true;
                button.textContent = "Generating...";

                const data = new FormData(form);
                const type = data.get("type");
                const payload = {
                    type,
                    size: Number(data.get("size")),
                    color: data.get("color"),
                    backgroundColor: data.get("backgroundColor"),
                    centerText: data.get("centerText"),
                    centerTextColor: data.get("centerTextColor"),
                    centerTextSize: Number(data.get("centerTextSize")),
                    centerTextBold: data.get("centerTextBold") === "on",
                };
                const content = (data.get("text") || "").trim();
                if (type === "url") {
                    payload.url = data.get("url");
                } else if (type === "text") {
                    payload.text = data.get("text");
                } else if (/^https?:\\/\\//.test(content)) {
                    payload.url = content;
                } else {
                    payload.text = content;
                }

                try {
                    const logo = document.getElementById("logo").files[0];
                    const bgImage = document.getElementById("bgImage").files[0];
                    if (type === "logo" && logo) {
                        payload.logo = await fileToBase64(logo);
                    }
                    if (type === "background" && bgImage) {
                        payload.bgImage = await fileToBase64(bgImage);
                    }

                    const response = await fetch("{{ url_for('generate_qr') }}", {
                        method: "POST",
                        headers: { "Content-Type": "application/json" },
                        body: JSON.stringify(payload),
                    });
                    if (!response.ok) {
                        const body = await response.json().catch(() => ({}));
                        throw new Error(body.error || "Failed to generate QR code");
                    }
                    const imageUrl = URL.createObjectURL(await response.blob());
                    document.getElementById("qr-image").src = imageUrl;
                    document.getElementById("download").href = imageUrl;
                    document.getElementById("preview").classList.remove("hidden");
                } catch (err) {
                    errorBox.textContent = err.message;
                } finally {
                    button.disabled = false;
                    button.textContent = "Generate QR Code";
                }
            });
        </script>
    </body>
    </html>
    """
    return render_template_string(
        template,
        sizes=SIZE_CHOICES,
        foreground=DEFAULT_FOREGROUND,
        background=DEFAULT_BACKGROUND,
        center_text_color=DEFAULT_CENTER_TEXT_COLOR,
        center_text_size=DEFAULT_CENTER_TEXT_SIZE,
    )


if __name__ == "__main__":
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.run(host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "5000")))
