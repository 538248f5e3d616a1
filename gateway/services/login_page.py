"""Login page shown when /oauth/authorize has no attached identity."""

import html
from string import Template

import orjson

_LOGIN_PAGE = Template(
    """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>$title</title>
  <style>
    body { font-family: Arial, sans-serif; background:#0f172a; color:#e2e8f0;
           display:flex; align-items:center; justify-content:center;
           height:100vh; margin:0; }
    .card { background:#111827; border:1px solid #1f2937; padding:32px;
            border-radius:12px; max-width:420px; text-align:center; }
    h1 { margin:0 0 12px; font-size:22px; }
    p { margin:0 0 18px; color:#94a3b8; }
    #status { margin-top:16px; font-size:14px; }
  </style>
</head>
<body>
  <div class="card">
    <h1>$title</h1>
    <p>Sign in to continue.</p>
    <div id="sign-in"></div>
    <div id="status"></div>
  </div>
  <script src="$clerk_js_url" data-clerk-publishable-key="$publishable_key"></script>
  <script>
    const requestId = $request_id_js;
    const completeUrl = $complete_url_js;
    const statusEl = document.getElementById('status');

    function setStatus(msg) { statusEl.textContent = msg; }

    let finalized = false;
    async function finalizeOnce(clerkToken) {
      if (finalized) {
        return;
      }
      finalized = true;
      const res = await fetch(completeUrl, {
        method: 'POST',
        headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify({ request_id: requestId, clerk_token: clerkToken })
      });
      const data = await res.json().catch(() => ({}));
      if (!res.ok || !data.redirect_to) {
        setStatus(data.detail || data.error || 'Authorization failed');
        return;
      }
      window.location = data.redirect_to;
    }

    async function initClerk() {
      if (!window.Clerk) {
        setStatus('Sign-in failed to load.');
        return;
      }
      await window.Clerk.load();
      const currentUrl = window.location.href;
      window.Clerk.mountSignIn(document.getElementById('sign-in'), {
        afterSignInUrl: currentUrl,
        redirectUrl: currentUrl
      });
      window.Clerk.addListener(async ({ user }) => {
        if (user && window.Clerk.session) {
          finalizeOnce(await window.Clerk.session.getToken());
        }
      });
      if (window.Clerk.user && window.Clerk.session) {
        finalizeOnce(await window.Clerk.session.getToken());
      }
    }
    initClerk();
  </script>
</body>
</html>
"""
)


def _js_string(value: str) -> str:
    # JSON is a valid JS literal; "</" would end the script element early.
    return orjson.dumps(value).decode("utf-8").replace("</", "<\\/")


def render_login_page(
    *,
    request_id: str,
    complete_url: str,
    clerk_js_url: str,
    publishable_key: str,
    title: str = "Authorize access",
) -> str:
    """Render the sign-in page that finishes a pending authorization."""
    return _LOGIN_PAGE.substitute(
        title=html.escape(title),
        clerk_js_url=html.escape(clerk_js_url, quote=True),
        publishable_key=html.escape(publishable_key, quote=True),
        request_id_js=_js_string(request_id),
        complete_url_js=_js_string(complete_url),
    )
