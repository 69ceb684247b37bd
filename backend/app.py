from flask import Flask, request, jsonify
from flask_cors import CORS

import compiler
from ast_nodes import node_to_dict

app = Flask(__name__)
app.config.update(MAX_CONTENT_LENGTH=1024 * 1024)
app.config.from_prefixed_env("FENT")
app.json.sort_keys = False
CORS(app)  # allow cross-origin requests


def _empty_response(errors):
    return {
        "tokens": [],
        "ast": {},
        "assembly": "",
        "errors": errors,
        "symbol_table": {},
        "strings": {},
    }


@app.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@app.route("/compile", methods=["POST"])
def compile_code():
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return jsonify(_empty_response(["Request error: body must be a JSON object"])), 400
    code = data.get("code", "")
    if not isinstance(code, str):
        return jsonify(_empty_response(["Request error: 'code' must be a string"])), 400
    try:
        result = compiler.compile_source(code, verbose=False)

        # Process tokens to match the --lexer dump
        processed_tokens = []
        for token in result['tokens']:
            if token.type != 'EOF':
                processed_tokens.append({
                    "type": token.type,
                    "value": token.value,
                    "lineno": token.lineno,
                })

        response = {
            "tokens": processed_tokens,
            "ast": node_to_dict(result['ast']) if result['ast'] else {},
            "assembly": result['asm'],
            "errors": result['errors'],
            "symbol_table": result['symbol_table'],
            "strings": result['strings'],
        }
        return jsonify(response), (400 if result['errors'] else 200)
    except Exception as e:
        app.logger.exception("compilation crashed")
        return jsonify(_empty_response([f"Unexpected error: {str(e)}"])), 500


if __name__ == "__main__":
    app.run(debug=app.config.get("DEBUG", False))
