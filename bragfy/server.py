"""
bragfy/server.py — Servidor HTTP auxiliar (health check e aviso de link pronto)

Roda em uma thread daemon ao lado do polling do bot; plataformas como o
Render exigem uma porta aberta. Usa o servidor embutido do Werkzeug, com
threads; o aviso de "development server" no log é esperado.
"""

import logging
import threading
from datetime import datetime, timezone

from flask import Flask, jsonify, request

from bragfy.database import check_database_connection
from bragfy.i18n import get_text
from bragfy.users import get_user_by_telegram_id

logger = logging.getLogger(__name__)


def create_app(notify=None) -> Flask:
    """
    `notify(chat_id, text)` é chamado de forma síncrona para avisar o usuário;
    deve levantar exceção se o envio falhar.
    """
    app = Flask(__name__)

    @app.route("/health")
    def health():
        return jsonify({
            "status": "online",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "connected" if check_database_connection() else "disconnected",
        })

    @app.route("/api/link-ready", methods=["POST"])
    def link_ready():
        payload = request.get_json(silent=True) or {}
        user_id = payload.get("userId")
        url = payload.get("url")

        if not user_id or not url:
            logger.warning(f"[API] Parâmetros inválidos recebidos: userId={user_id}, url={url}")
            return jsonify({"error": "Parâmetros inválidos"}), 400

        try:
            telegram_id = int(user_id)
        except (TypeError, ValueError):
            logger.warning(f"[API] userId inválido: {user_id}")
            return jsonify({"error": "Parâmetros inválidos"}), 400

        try:
            user = get_user_by_telegram_id(telegram_id)
            if user is None:
                logger.warning(f"[API] Usuário com ID {user_id} não encontrado")
                return jsonify({"error": "User not found"}), 404

            if notify is None:
                raise RuntimeError("Notificador do bot não configurado")
            notify(user.telegram_id, get_text("pt", "link_ready", url=url))
        except Exception as e:
            logger.error(f"[API] Erro ao processar requisição de link-ready: {e}")
            return jsonify({"error": "Erro interno do servidor"}), 500

        logger.info(f"[API] Notificação enviada com sucesso para o usuário {user_id}")
        return jsonify({"success": True}), 200

    return app


def start_health_server(port: int, notify=None) -> threading.Thread:
    app = create_app(notify)
    thread = threading.Thread(
        target=app.run,
        kwargs={"host": "0.0.0.0", "port": port, "threaded": True, "use_reloader": False},
        name="bragfy-http",
        daemon=True,
    )
    thread.start()
    logger.info(f"🌐 Servidor HTTP ouvindo na porta {port}")
    return thread
