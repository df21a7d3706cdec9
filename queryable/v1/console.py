"""HTML served by the studio route.

The studio page embeds the query editor in an iframe and relays its
``query``/``transaction`` messages to this route as POST bodies. Replies go
back into the frame carrying the original ``id`` so the editor can match
them to its pending requests.
"""

import html

STUDIO_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8" />
    <title>Queryable Studio</title>
    <style>
        html, body { padding: 0; margin: 0; width: 100vw; height: 100vh; }
        #import-link { position: fixed; right: 12px; bottom: 12px; font: 12px sans-serif; }
        iframe { width: 100vw; height: 100vh; overflow: hidden; border: 0; }
    </style>
</head>
<body>
    <script>
        function reply(message) {
            document.getElementById("editor").contentWindow.postMessage(message, "*");
        }

        window.addEventListener("message", function (e) {
            var request = e.data || {};
            if (request.type !== "query" && request.type !== "transaction") return;

            fetch(window.location.pathname, {
                method: "POST",
                headers: { "Content-Type": "application/json" },
                body: JSON.stringify(request),
            })
                .then(function (r) {
                    if (!r.ok) throw new Error("Something went wrong");
                    return r.json();
                })
                .then(function (body) {
                    if (body.error) {
                        reply({ id: request.id, type: request.type, error: body.error });
                    } else {
                        reply({ id: request.id, type: request.type, data: body.result });
                    }
                })
                .catch(function (err) {
                    console.error(err);
                    reply({ id: request.id, type: request.type, error: "Something went wrong" });
                });
        });
    </script>
    <a id="import-link" href="?page=import">Import SQL</a>
    <iframe id="editor" allow="clipboard-read; clipboard-write" src="__EDITOR_URL__"></iframe>
</body>
</html>
"""

IMPORT_PAGE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8" />
    <title>SQL Import</title>
</head>
<body>
    <h2>Import SQL File</h2>
    <input type="file" id="sqlFile" accept=".sql" />
    <button id="importBtn">Import</button>
    <div id="status"></div>
    <div id="results"></div>

    <script type="module">
        import * as sqlParser from "https://unpkg.com/sql-parser-cst@latest/lib/main.js";

        function splitStatements(sql) {
            var ast = sqlParser.parse(sql, { dialect: "sqlite", includeSpaces: true, includeComments: true });
            return (ast.statements || [])
                .filter(function (stmt) { return stmt && stmt.type !== "empty"; })
                .map(function (stmt) { return sqlParser.show(stmt).trim(); })
                .filter(function (text) { return text.length > 0; });
        }

        function escapeHtml(text) {
            var div = document.createElement("div");
            div.textContent = text;
            return div.innerHTML;
        }

        async function runStatement(statement, index) {
            var response = await fetch(window.location.pathname, {
                method: "POST",
                headers: { "Content-Type": "application/json" },
                body: JSON.stringify({ type: "query", id: "import_" + index + "_" + Date.now(), statement: statement }),
            });
            var body = await response.json();
            if (body.error) throw new Error(body.error);
        }

        async function importSQL() {
            var file = document.getElementById("sqlFile").files[0];
            var button = document.getElementById("importBtn");
            var status = document.getElementById("status");
            var results = document.getElementById("results");
            if (!file) {
                alert("Please select a SQL file");
                return;
            }

            button.disabled = true;
            results.innerHTML = "";
            try {
                status.textContent = "Parsing SQL...";
                var statements;
                try {
                    statements = splitStatements(await file.text());
                } catch (err) {
                    console.error("Failed to parse SQL:", err);
                    statements = [];
                }
                if (statements.length === 0) {
                    status.textContent = "No valid SQL statements found";
                    return;
                }

                var succeeded = 0, failed = 0;
                for (var i = 0; i < statements.length; i++) {
                    try {
                        await runStatement(statements[i], i);
                        succeeded++;
                    } catch (err) {
                        failed++;
                        var entry = document.createElement("div");
                        entry.innerHTML = "<strong>Statement " + (i + 1) + " failed:</strong> " +
                            escapeHtml(err.message) + "<br><pre>" + escapeHtml(statements[i]) + "</pre><hr>";
                        results.appendChild(entry);
                    }
                    status.textContent = "Progress: " + (i + 1) + "/" + statements.length +
                        " (" + succeeded + " succeeded, " + failed + " failed)";
                }
                status.textContent = "Import complete! " + succeeded + " statements succeeded, " + failed + " failed.";
            } catch (err) {
                status.textContent = "Error: " + err.message;
            } finally {
                button.disabled = false;
            }
        }

        document.getElementById("importBtn").addEventListener("click", importSQL);
    </script>
</body>
</html>
"""


def studio_page(editor_url: str) -> str:
    return STUDIO_TEMPLATE.replace("__EDITOR_URL__", html.escape(editor_url, quote=True))


def import_page() -> str:
    return IMPORT_PAGE
