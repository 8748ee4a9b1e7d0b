import os
from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup, ReplyKeyboardMarkup
from telegram.ext import (
    Application, CommandHandler, CallbackQueryHandler, ContextTypes, MessageHandler, filters,
)
from controllers.command_controller import CommandController
from models.trade_session import TradingSession
from utils.logger import logger_manager

logger = logger_manager.setup_logger(__name__)

BTN_START = "Start Trading"
BTN_STOP = "Stop Trading"
BTN_STATUS = "Status"
BTN_CLEAN = "Clean"

KEYBOARD = ReplyKeyboardMarkup(
    [[BTN_START, BTN_STOP], [BTN_STATUS, BTN_CLEAN]],
    resize_keyboard=True,
    is_persistent=True,
)


class TelegramBot:
    """
    Superficie de control por Telegram. Traduce botones y comandos a la tabla
    de CommandController; no decide nada de trading.
    """
    def __init__(self, session: TradingSession, commands: CommandController,
                 token: str | None = None, chat_id: str | int | None = None) -> None:
        self.token = token or os.getenv("TELEGRAM_TOKEN")
        if not self.token:
            raise RuntimeError("Falta TELEGRAM_TOKEN")

        self.session = session
        self.commands = commands

        raw_chat = chat_id if chat_id is not None else os.getenv("TELEGRAM_CHAT_ID")
        self.reject_all = False
        try:
            self.chat_id = int(raw_chat) if raw_chat not in (None, "") else None
        except (TypeError, ValueError):
            logger.error(f"TELEGRAM_CHAT_ID no numérico ({raw_chat!r}); se rechazan todas las órdenes.")
            self.chat_id = None
            self.reject_all = True
        # con chat configurado sólo ese chat puede mandar órdenes;
        # filters.Chat sin ids no deja pasar a nadie
        if self.chat_id is not None or self.reject_all:
            self.allowed = filters.Chat(chat_id=self.chat_id)
        else:
            self.allowed = filters.ALL

        self.application = Application.builder().token(self.token).build()
        app, allowed = self.application, self.allowed

        app.add_handler(CommandHandler("start", self.cmd_welcome, filters=allowed))
        app.add_handler(CommandHandler("trade", self._command("start"), filters=allowed))
        app.add_handler(CommandHandler("stop", self._command("stop"), filters=allowed))
        app.add_handler(CommandHandler("status", self._command("status"), filters=allowed))
        app.add_handler(CommandHandler("set", self._command("set"), filters=allowed))
        app.add_handler(CommandHandler("reset", self.cmd_clean, filters=allowed))

        app.add_handler(MessageHandler(allowed & filters.Text([BTN_START]), self._command("start")))
        app.add_handler(MessageHandler(allowed & filters.Text([BTN_STOP]), self._command("stop")))
        app.add_handler(MessageHandler(allowed & filters.Text([BTN_STATUS]), self._command("status")))
        app.add_handler(MessageHandler(allowed & filters.Text([BTN_CLEAN]), self.cmd_clean))

        app.add_handler(CallbackQueryHandler(self.cb_clean, pattern=r"^clean_(confirm|cancel)$"))

    def is_authorized(self, chat_id: int) -> bool:
        if self.reject_all:
            return False
        return self.chat_id is None or chat_id == self.chat_id

    def _command(self, name: str):
        async def handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
            args = list(context.args or []) if name == "set" else []
            result = self.commands.dispatch(name, self.session, args)
            await update.effective_message.reply_text(result.reply, reply_markup=KEYBOARD)
        handler.__name__ = f"cmd_{name.replace('-', '_')}"
        return handler

    async def cmd_welcome(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await update.effective_message.reply_text(
            "Welcome to Binance Trader Bot! Use the buttons below to control the bot.",
            reply_markup=KEYBOARD,
        )

    async def cmd_clean(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        kb = InlineKeyboardMarkup([[
            InlineKeyboardButton("Yes", callback_data="clean_confirm"),
            InlineKeyboardButton("No", callback_data="clean_cancel"),
        ]])
        await update.effective_message.reply_text(
            "⚠️ Are you sure you want to clean the database?", reply_markup=kb
        )

    async def cb_clean(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        query = update.callback_query
        await query.answer()
        chat = update.effective_chat
        if chat is None or not self.is_authorized(chat.id):
            logger.warning(f"Callback ignorado desde chat no autorizado: {chat.id if chat else '?'}")
            return
        if query.data == "clean_confirm":
            result = self.commands.dispatch("reset-state", self.session)
            await query.edit_message_text(result.reply)
        else:
            await query.edit_message_text("❌ Clean operation canceled.")

    def run(self):
        logger.info("TelegramBot iniciando...")
        self.application.run_polling(allowed_updates=Update.ALL_TYPES)
