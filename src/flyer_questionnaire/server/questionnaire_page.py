from __future__ import annotations

# ruff: noqa: E501
import html
import json


def render_questionnaire_html(session_id: str, *, title: str) -> str:
    """
    Questionnaire page (single page app).

    The page is a thin client: field edits go to the JSON API, pointer input on
    the map canvases goes over the sketch websocket, and the map image shown
    is always the server render. Only the stroke under the finger is drawn
    locally, on an overlay canvas.
    """
    return f"""
<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width,initial-scale=1" />
    <title>{html.escape(title)}</title>
    <style>
      body {{ margin: 0; background: #f9fafb; color: #111827; font-family: ui-sans-serif, system-ui, -apple-system; }}
      main {{ max-width: 42rem; margin: 0 auto; padding: 24px; }}
      h2 {{ font-size: 1.15rem; }}
      label.opt {{ display: block; margin: 6px 0; }}
      input[type=text], input[type=email], input[type=tel], input[type=date], textarea {{ width: 100%; box-sizing: border-box; padding: 8px 10px; margin: 4px 0 10px; border: 1px solid #d1d5db; border-radius: 8px; }}
      textarea {{ min-height: 120px; }}
      button {{ padding: 8px 14px; border-radius: 8px; border: 1px solid #d1d5db; background: #fff; cursor: pointer; }}
      button.primary {{ background: #111827; color: #fff; }}
      button:disabled {{ opacity: 0.5; cursor: default; }}
      #nav {{ display: flex; gap: 8px; margin-top: 16px; }}
      #errors {{ color: #b91c1c; font-size: 0.9rem; }}
      #progress {{ font-size: 0.8rem; color: #6b7280; }}
      .surface {{ position: relative; border: 1px solid #e5e7eb; border-radius: 16px; overflow: hidden; touch-action: none; user-select: none; }}
      .surface img, .surface canvas {{ position: absolute; inset: 0; width: 100%; height: 100%; }}
      .tools {{ display: flex; gap: 8px; align-items: center; margin: 8px 0; }}
      .tools button.on {{ background: #fee2e2; border-color: #ef4444; }}
    </style>
  </head>
  <body>
    <main>
      <div id="progress"></div>
      <section id="step"></section>
      <div id="errors"></div>
      <div id="nav">
        <button id="back">Back</button>
        <button id="next" class="primary">Continue</button>
        <span style="flex:1"></span>
        <button id="reset">Start over</button>
      </div>
    </main>
    <script>
      const sessionId = {json.dumps(session_id)};
      const api = (p) => `/api/sessions/${{sessionId}}${{p}}`;
      const stepEl = document.getElementById("step");
      const errorsEl = document.getElementById("errors");
      const progressEl = document.getElementById("progress");
      const backEl = document.getElementById("back");
      const nextEl = document.getElementById("next");
      let state = null;
      let questions = [];
      let ws = null;
      let sizeObserver = null;

      async function call(method, path, body) {{
        const res = await fetch(api(path), {{
          method,
          headers: {{ "Content-Type": "application/json" }},
          body: body === undefined ? undefined : JSON.stringify(body),
        }});
        const data = await res.json();
        if (!res.ok) throw new Error(data.error || data.detail || res.statusText);
        return data;
      }}

      function el(tag, attrs, ...children) {{
        const node = document.createElement(tag);
        for (const [k, v] of Object.entries(attrs || {{}})) {{
          if (k.startsWith("on")) node.addEventListener(k.slice(2), v);
          else if (k in node) node[k] = v;
          else node.setAttribute(k, v);
        }}
        for (const c of children) node.append(c);
        return node;
      }}

      function update(next) {{
        state = next;
        progressEl.textContent = `Step ${{state.step + 1}} of ${{state.totalSteps}}`;
        errorsEl.textContent = state.errors.join(" ");
        backEl.disabled = state.step === 0;
        nextEl.disabled = !state.canAdvance;
        nextEl.style.display = state.kind === "review" ? "none" : "";
      }}

      async function edit(method, path, body) {{
        try {{ update(await call(method, path, body)); }}
        catch (e) {{ errorsEl.textContent = e.message; }}
      }}

      function renderContact() {{
        const c = state.contact;
        const field = (name, type, placeholder) =>
          el("input", {{ type, value: c[name], placeholder, oninput: (e) => edit("PUT", "/contact", {{ [name]: e.target.value }}) }});
        stepEl.replaceChildren(
          el("h2", {{}}, "Your Details"),
          field("name", "text", "Full name"),
          field("phone", "tel", "Phone"),
          field("email", "email", "Email"),
        );
      }}

      function renderQuestion() {{
        const q = state.question;
        const a = state.answers[q.id];
        const path = `/answers/${{encodeURIComponent(q.id)}}`;
        const body = [el("h2", {{}}, q.label + (q.required ? " *" : ""))];
        if (q.kind === "single") {{
          for (const opt of q.options) {{
            body.push(el("label", {{ className: "opt" }},
              el("input", {{ type: "radio", name: q.id, checked: a === opt, onchange: () => edit("PUT", path, {{ value: opt }}) }}), " " + opt));
          }}
        }} else if (q.kind === "multi") {{
          for (const opt of q.options) {{
            body.push(el("label", {{ className: "opt" }},
              el("input", {{ type: "checkbox", checked: Array.isArray(a) && a.includes(opt), onchange: () => edit("POST", path + "/toggle", {{ option: opt }}) }}), " " + opt));
          }}
        }} else if (q.kind === "longtext") {{
          body.push(el("textarea", {{ value: a || "", placeholder: q.placeholder || "", oninput: (e) => edit("PUT", path, {{ value: e.target.value }}) }}));
        }} else if (q.kind === "date") {{
          body.push(el("input", {{ type: "date", value: a || "", onchange: (e) => edit("PUT", path, {{ value: e.target.value || null }}) }}));
        }}
        stepEl.replaceChildren(...body);
      }}

      function renderSketch() {{
        const task = state.mapTask;
        const key = task.key;
        const sketch = state.sketches[key];
        const img = el("img", {{ alt: task.title }});
        const overlay = el("canvas", {{}});
        const surface = el("div", {{ className: "surface" }}, img, overlay);
        const refresh = () => {{ img.src = api(`/sketches/${{key}}/render.png?ts=${{Date.now()}}`); }};
        const toolBtn = (tool, label) => el("button", {{
          className: sketch.tool === tool ? "on" : "",
          onclick: async () => {{ await edit("PUT", `/sketches/${{key}}/tool`, {{ tool }}); renderSketch(); }},
        }}, label);
        stepEl.replaceChildren(
          el("h2", {{}}, task.title),
          el("p", {{}}, task.helper),
          el("div", {{ className: "tools" }},
            toolBtn("pen", "Pen"), toolBtn("eraser", "Eraser"),
            el("input", {{ type: "range", min: 1, max: 24, value: sketch.strokeWidth,
              onchange: (e) => edit("PUT", `/sketches/${{key}}/width`, {{ width: Number(e.target.value) }}) }}),
            el("button", {{ onclick: async () => {{ await edit("POST", `/sketches/${{key}}/undo`); refresh(); }} }}, "Undo"),
            el("button", {{ onclick: async () => {{ await edit("POST", `/sketches/${{key}}/clear`); refresh(); }} }}, "Clear"),
          ),
          surface,
        );

        const ctx = overlay.getContext("2d");
        let last = null;
        function resize() {{
          const dpr = window.devicePixelRatio || 1;
          const w = surface.clientWidth;
          const h = Math.round(w * 0.66);
          surface.style.height = h + "px";
          overlay.width = Math.max(1, Math.floor(w * dpr));
          overlay.height = Math.max(1, Math.floor(h * dpr));
          call("PUT", `/sketches/${{key}}/size`, {{ width: w, height: h, pixel_ratio: dpr }}).then(refresh);
        }}
        if (sizeObserver) sizeObserver.disconnect();
        sizeObserver = new ResizeObserver(resize);
        sizeObserver.observe(surface);

        function send(phase, e) {{
          const rect = overlay.getBoundingClientRect();
          const x = e.clientX - rect.left;
          const y = e.clientY - rect.top;
          if (ws && ws.readyState === WebSocket.OPEN) ws.send(JSON.stringify({{ t: "pointer", phase, x, y }}));
          const dpr = window.devicePixelRatio || 1;
          if (phase === "down") {{ last = [x * dpr, y * dpr]; return; }}
          if (phase === "move" && last) {{
            const cur = [x * dpr, y * dpr];
            ctx.save();
            ctx.lineCap = "round";
            ctx.lineJoin = "round";
            ctx.lineWidth = state.sketches[key].strokeWidth * dpr;
            ctx.strokeStyle = state.sketches[key].tool === "eraser" ? "rgba(255,255,255,0.9)" : "#ef4444";
            ctx.beginPath();
            ctx.moveTo(last[0], last[1]);
            ctx.lineTo(cur[0], cur[1]);
            ctx.stroke();
            ctx.restore();
            last = cur;
          }}
          if (phase === "up" || phase === "cancel") last = null;
        }}
        overlay.addEventListener("pointerdown", (e) => {{ e.preventDefault(); overlay.setPointerCapture(e.pointerId); send("down", e); }});
        overlay.addEventListener("pointermove", (e) => {{ if (last) send("move", e); }});
        overlay.addEventListener("pointerup", (e) => send("up", e));
        overlay.addEventListener("pointercancel", (e) => send("cancel", e));
        overlay.addEventListener("pointerleave", (e) => {{ if (last) send("up", e); }});

        if (ws) ws.close();
        const proto = (location.protocol === "https:") ? "wss" : "ws";
        ws = new WebSocket(`${{proto}}://${{location.host}}/ws/${{sessionId}}/sketches/${{key}}`);
        ws.onmessage = (ev) => {{
          let msg;
          try {{ msg = JSON.parse(ev.data); }} catch {{ return; }}
          if (msg.sketch !== key) return;
          if (msg.t === "stroke_committed" || msg.t === "stroke_discarded") {{
            ctx.clearRect(0, 0, overlay.width, overlay.height);
            refresh();
          }}
        }};
      }}

      function renderReview() {{
        const items = questions.map((q) => {{
          const a = state.answers[q.id];
          return el("li", {{}}, `${{q.label}}: ${{Array.isArray(a) ? a.join(", ") : (a || "")}}`);
        }});
        const c = state.contact;
        const status = el("p", {{}});
        const submit = el("button", {{ className: "primary", onclick: async () => {{
          submit.disabled = true;
          try {{
            const res = await call("POST", "/submit");
            update(res.state);
            if (res.ok) return render();
            status.textContent = res.message;
          }} catch (e) {{
            status.textContent = e.message;
          }}
          submit.disabled = false;
        }} }}, "Submit Application");
        stepEl.replaceChildren(
          el("h2", {{}}, "Review & Submit"),
          el("p", {{}}, `${{c.name}} - ${{c.phone}} - ${{c.email}}`),
          el("ul", {{}}, ...items),
          submit,
          status,
        );
      }}

      function render() {{
        if (ws && state.kind !== "sketch") {{ ws.close(); ws = null; }}
        if (sizeObserver && state.kind !== "sketch") {{ sizeObserver.disconnect(); sizeObserver = null; }}
        if (state.submitted) {{
          stepEl.replaceChildren(
            el("h2", {{}}, "Thank you"),
            el("p", {{}}, "Thank you for your interest, we will contact you to proceed with your application in due course."),
          );
          document.getElementById("nav").style.display = "none";
          errorsEl.textContent = "";
          return;
        }}
        if (state.kind === "contact") renderContact();
        else if (state.kind === "question") renderQuestion();
        else if (state.kind === "sketch") renderSketch();
        else renderReview();
      }}

      backEl.addEventListener("click", async () => {{ await edit("POST", "/retreat"); render(); }});
      nextEl.addEventListener("click", async () => {{ await edit("POST", "/advance"); render(); }});
      document.getElementById("reset").addEventListener("click", async () => {{
        if (!confirm("This clears all of your answers and drawings. Start over?")) return;
        await edit("POST", "/reset", {{ confirm: true }});
        document.getElementById("nav").style.display = "";
        render();
      }});

      (async () => {{
        questions = (await (await fetch("/api/questions")).json()).questions;
        update(await call("GET", ""));
        render();
      }})();
    </script>
  </body>
</html>
"""
