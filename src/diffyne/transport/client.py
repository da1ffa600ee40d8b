"""Browser client — injects the patch applier into HTML responses.

The injected script:
1. Finds component hosts (``[data-diffyne-id]``) and keeps each host's
   signed envelope from ``data-diffyne-state``
2. Turns ``diff:click`` / ``diff:model`` directives into update requests
3. Applies the returned patches in order, or falls back to swapping in the
   full rendering when a patch does not fit the live DOM.  A host showing
   validation messages (which are not part of the signed state) is marked
   stale, and the next response swaps in the full rendering
4. Stores the new envelope, fires dispatched events, follows redirects

Paths address element and text children only; comments are skipped, the
same way the server-side parser drops them.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from diffyne.protocol.response import HOST_ID_ATTRIBUTE, HOST_STATE_ATTRIBUTE

if TYPE_CHECKING:
    from chirp.http.request import Request
    from chirp.http.response import Response, SSEResponse, StreamingResponse
    from chirp.middleware.protocol import Next

    type AnyResponse = Response | StreamingResponse | SSEResponse

UPDATE_ENDPOINT = "/diffyne/update"

CLIENT_SCRIPT = """\
<script data-diffyne-client>
(function() {
  var ENDPOINT = '__ENDPOINT__';
  var ID_ATTR = '__ID_ATTR__', STATE_ATTR = '__STATE_ATTR__';
  var STALE_ATTR = 'data-diffyne-stale';

  function nodes(parent) {
    var out = [];
    for (var n = parent.firstChild; n; n = n.nextSibling) {
      if (n.nodeType === 1 || n.nodeType === 3) out.push(n);
    }
    return out;
  }
  function resolve(host, path) {
    var node = host;
    for (var i = 0; i < path.length; i++) {
      node = nodes(node)[path[i]];
      if (!node) throw new Error('diffyne: no node at ' + path.join('.'));
    }
    return node;
  }
  function build(op) {
    if ('text' in op) return document.createTextNode(op.text);
    var tpl = document.createElement('template');
    tpl.innerHTML = op.html;
    return tpl.content.firstChild;
  }
  function apply(host, op) {
    var node, parent, kids;
    switch (op.op) {
      case 'remove':
        node = resolve(host, op.path); node.parentNode.removeChild(node); break;
      case 'insert':
        parent = resolve(host, op.parent); kids = nodes(parent);
        parent.insertBefore(build(op), kids[op.index] || null); break;
      case 'reorder':
        parent = resolve(host, op.parent); kids = nodes(parent);
        var byKey = {};
        kids.forEach(function(k) {
          if (k.nodeType === 1 && k.hasAttribute('diff:key')) byKey[k.getAttribute('diff:key')] = k;
        });
        op.order.forEach(function(entry) {
          parent.appendChild(typeof entry === 'string' ? byKey[entry] : kids[entry]);
        });
        break;
      case 'replaceText':
        resolve(host, op.path).nodeValue = op.text; break;
      case 'setAttribute':
        node = resolve(host, op.path); node.setAttribute(op.name, op.value);
        if (op.name === 'value' && 'value' in node) node.value = op.value;
        break;
      case 'removeAttribute':
        resolve(host, op.path).removeAttribute(op.name); break;
      case 'replace':
        node = resolve(host, op.path); node.parentNode.replaceChild(build(op), node); break;
    }
  }
  function send(host, mutation) {
    var env = JSON.parse(host.getAttribute(STATE_ATTR));
    env.mutation = mutation;
    fetch(ENDPOINT, {
      method: 'POST',
      headers: {'Content-Type': 'application/json'},
      body: JSON.stringify(env)
    }).then(function(r) { return r.json(); }).then(function(body) {
      if (body.error) { console.warn('diffyne: ' + body.error, body.message || ''); return; }
      if (host.hasAttribute(STALE_ATTR)) {
        host.innerHTML = body.html;
      } else {
        try { body.patches.forEach(function(op) { apply(host, op); }); }
        catch (e) { host.innerHTML = body.html; }
      }
      if (body.errors && body.errors.length) host.setAttribute(STALE_ATTR, '');
      else host.removeAttribute(STALE_ATTR);
      host.setAttribute(STATE_ATTR, JSON.stringify({
        componentId: body.componentId, state: body.state, signature: body.signature
      }));
      (body.events || []).forEach(function(ev) {
        host.dispatchEvent(new CustomEvent(ev.name, {detail: ev.payload, bubbles: true}));
      });
      if (body.redirect) location.assign(body.redirect);
    });
  }
  function hostOf(el) { return el.closest('[' + ID_ATTR + ']'); }

  document.addEventListener('click', function(e) {
    var el = e.target.closest('[diff\\\\:click]');
    var host = el && hostOf(el);
    if (!host) return;
    e.preventDefault();
    var args = el.getAttribute('diff:args');
    send(host, {kind: 'methodCall', name: el.getAttribute('diff:click'),
                args: args ? JSON.parse(args) : []});
  });
  document.addEventListener('change', function(e) {
    var el = e.target.closest('[diff\\\\:model]');
    var host = el && hostOf(el);
    if (!host) return;
    var value = el.type === 'checkbox' ? el.checked : el.value;
    if (el.type === 'number' && value !== '') value = Number(value);
    send(host, {kind: 'propertySet', name: el.getAttribute('diff:model'), value: value});
  });
})();
</script>
"""


def client_script(endpoint: str = UPDATE_ENDPOINT) -> str:
    """The client script, bound to *endpoint*."""
    return (
        CLIENT_SCRIPT
        .replace("__ENDPOINT__", endpoint)
        .replace("__ID_ATTR__", HOST_ID_ATTRIBUTE)
        .replace("__STATE_ATTR__", HOST_STATE_ATTRIBUTE)
    )


def make_client_script_middleware(endpoint: str = UPDATE_ENDPOINT):  # noqa: ANN201
    """Chirp middleware that injects the client script into HTML responses.

    Only pages that contain a component host are modified.  The script tag
    goes just before ``</body>`` (or is appended if there is no closing tag).

    """
    script = client_script(endpoint)

    async def client_script_middleware(request: Request, next: Next) -> AnyResponse:
        response = await next(request)

        # Only inject into regular (non-streaming, non-SSE) HTML responses
        if not hasattr(response, "body") or not hasattr(response, "content_type"):
            return response

        if "text/html" not in response.content_type:
            return response

        body = response.body
        if isinstance(body, bytes):
            body = body.decode("utf-8")

        if HOST_ID_ATTRIBUTE not in body or "data-diffyne-client" in body:
            return response

        if "</body>" in body:
            body = body.replace("</body>", script + "</body>", 1)
        elif "</html>" in body:
            body = body.replace("</html>", script + "</html>", 1)
        else:
            body += script

        return replace(response, body=body)

    return client_script_middleware
