"""User-facing strings.

Lookup falls back to English for unknown languages and missing keys;
``{placeholder}`` markers are substituted from keyword arguments.
"""

from typing import Any, Dict

EN: Dict[str, str] = {
    "unauthorized": "Sorry, you are not authorized to use this bot.",
    "start_welcome": (
        "Welcome! I relay your questions to AI models through OpenRouter.\n\n"
        "First, set your OpenRouter API key with /setkey <your_key>."
    ),
    "start_welcome_authorized": "Welcome back! Just send me a message or use /ask <question>.",
    "current_settings": "Current model: {model}\nSystem prompt: {systemPrompt}",
    "settings_summary": (
        "Model: {model}\nPersona: {persona}\nSystem prompt: {systemPrompt}\nLanguage: {language}\n"
        "Search: {search}\nAPI key: {key}\nHistory: {history} messages"
    ),
    "key_set_invalid": "Please provide a key: /setkey <your_openrouter_key>",
    "key_set_success": "Your API key was verified and saved.",
    "key_verification_failed": "That API key could not be verified. Please check it and try again.",
    "key_required": "You need to set an OpenRouter API key first. Use /setkey <your_key>.",
    "key_menu": "Your API key is stored ({masked}).",
    "key_none": "No API key is stored. Use /setkey <your_key>.",
    "key_deleted": "Your API key was deleted.",
    "button_delete_key": "Delete key",
    "button_clear_history": "Clear history",
    "model_set_invalid": "Please provide a model id: /setmodel <model_id>",
    "model_set_success": "Model set to {model}.",
    "model_fetch_error": "Could not find or fetch that model. Check the id and try again.",
    "models_header": "Choose a model (page {page} of {pages}):",
    "models_empty": "No models are available right now.",
    "button_prev": "« Prev",
    "button_next": "Next »",
    "system_prompt_set_success": "System prompt updated.",
    "system_prompt_reset_success": "System prompt reset to the default.",
    "settings_reset_success": "Your settings were reset. Your language preference was kept.",
    "history_cleared": "Conversation history cleared.",
    "ask_invalid": "Please provide a question: /ask <your question>",
    "ask_thinking": "Thinking...",
    "ask_error": "Sorry, something went wrong while getting a response.",
    "ask_no_content": "No content received",
    "generic_error": "Sorry, an unexpected error occurred.",
    "language_prompt": "Choose your language:",
    "language_set_success": "Language set to English.",
    "persona_prompt": "Choose a persona:",
    "persona_set_success": "Persona set to {persona}.",
    "persona_custom": "custom",
    "persona_unknown": "Unknown persona. Available: {personas}",
    "search_invalid": "Please provide a query: /search <query>",
    "search_thinking": "Searching...",
    "search_disabled": "Search is turned off. Use /togglesearch to enable it.",
    "search_unavailable": "Search is unavailable right now. Please try again later.",
    "search_no_results": "No results found for \"{query}\".",
    "search_toggle_prompt": "Web search is currently {state}.",
    "search_state_on": "on",
    "search_state_off": "off",
    "search_enabled": "Web search enabled.",
    "search_disabled_now": "Web search disabled.",
    "button_on": "Turn on",
    "button_off": "Turn off",
    "help": (
        "Commands:\n"
        "/ask <question> - ask the AI (plain messages work too)\n"
        "/search <query> - search the web and summarize\n"
        "/setkey <key> - set your OpenRouter API key\n"
        "/key - manage your API key\n"
        "/models - browse models\n"
        "/setmodel <id> - choose a model\n"
        "/setsystemprompt <text> - set the system prompt (empty resets)\n"
        "/persona [name] - choose a persona\n"
        "/setlang [code] - choose a language\n"
        "/togglesearch - turn web search on or off\n"
        "/clear - clear conversation history\n"
        "/settings - show your settings\n"
        "/resetsettings - reset your settings"
    ),
}

ID: Dict[str, str] = {
    "unauthorized": "Maaf, Anda tidak diizinkan menggunakan bot ini.",
    "start_welcome": (
        "Selamat datang! Saya meneruskan pertanyaan Anda ke model AI melalui OpenRouter.\n\n"
        "Pertama, atur kunci API OpenRouter Anda dengan /setkey <kunci_anda>."
    ),
    "start_welcome_authorized": "Selamat datang kembali! Kirim pesan atau gunakan /ask <pertanyaan>.",
    "current_settings": "Model saat ini: {model}\nPrompt sistem: {systemPrompt}",
    "settings_summary": (
        "Model: {model}\nPersona: {persona}\nPrompt sistem: {systemPrompt}\nBahasa: {language}\n"
        "Pencarian: {search}\nKunci API: {key}\nRiwayat: {history} pesan"
    ),
    "key_set_invalid": "Harap berikan kunci: /setkey <kunci_openrouter_anda>",
    "key_set_success": "Kunci API Anda telah diverifikasi dan disimpan.",
    "key_verification_failed": "Kunci API tidak dapat diverifikasi. Periksa dan coba lagi.",
    "key_required": "Anda perlu mengatur kunci API OpenRouter terlebih dahulu. Gunakan /setkey <kunci_anda>.",
    "key_menu": "Kunci API Anda tersimpan ({masked}).",
    "key_none": "Tidak ada kunci API tersimpan. Gunakan /setkey <kunci_anda>.",
    "key_deleted": "Kunci API Anda telah dihapus.",
    "button_delete_key": "Hapus kunci",
    "button_clear_history": "Hapus riwayat",
    "model_set_invalid": "Harap berikan id model: /setmodel <id_model>",
    "model_set_success": "Model diatur ke {model}.",
    "model_fetch_error": "Model tidak ditemukan atau gagal diambil. Periksa id dan coba lagi.",
    "models_header": "Pilih model (halaman {page} dari {pages}):",
    "models_empty": "Tidak ada model yang tersedia saat ini.",
    "button_prev": "« Sebelumnya",
    "button_next": "Berikutnya »",
    "system_prompt_set_success": "Prompt sistem diperbarui.",
    "system_prompt_reset_success": "Prompt sistem dikembalikan ke bawaan.",
    "settings_reset_success": "Pengaturan Anda telah direset. Preferensi bahasa tetap disimpan.",
    "history_cleared": "Riwayat percakapan dihapus.",
    "ask_invalid": "Harap berikan pertanyaan: /ask <pertanyaan anda>",
    "ask_thinking": "Sedang berpikir...",
    "ask_error": "Maaf, terjadi kesalahan saat mendapatkan respons.",
    "ask_no_content": "Tidak ada konten diterima",
    "generic_error": "Maaf, terjadi kesalahan tak terduga.",
    "language_prompt": "Pilih bahasa Anda:",
    "language_set_success": "Bahasa diatur ke Bahasa Indonesia.",
    "persona_prompt": "Pilih persona:",
    "persona_set_success": "Persona diatur ke {persona}.",
    "persona_custom": "kustom",
    "persona_unknown": "Persona tidak dikenal. Tersedia: {personas}",
    "search_invalid": "Harap berikan kueri: /search <kueri>",
    "search_thinking": "Sedang mencari...",
    "search_disabled": "Pencarian dimatikan. Gunakan /togglesearch untuk mengaktifkannya.",
    "search_unavailable": "Pencarian sedang tidak tersedia. Silakan coba lagi nanti.",
    "search_no_results": "Tidak ada hasil untuk \"{query}\".",
    "search_toggle_prompt": "Pencarian web saat ini {state}.",
    "search_state_on": "aktif",
    "search_state_off": "nonaktif",
    "search_enabled": "Pencarian web diaktifkan.",
    "search_disabled_now": "Pencarian web dinonaktifkan.",
    "button_on": "Aktifkan",
    "button_off": "Nonaktifkan",
    "help": (
        "Perintah:\n"
        "/ask <pertanyaan> - tanya AI (pesan biasa juga bisa)\n"
        "/search <kueri> - cari di web dan rangkum\n"
        "/setkey <kunci> - atur kunci API OpenRouter\n"
        "/key - kelola kunci API\n"
        "/models - lihat daftar model\n"
        "/setmodel <id> - pilih model\n"
        "/setsystemprompt <teks> - atur prompt sistem (kosong untuk reset)\n"
        "/persona [nama] - pilih persona\n"
        "/setlang [kode] - pilih bahasa\n"
        "/togglesearch - nyalakan atau matikan pencarian web\n"
        "/clear - hapus riwayat percakapan\n"
        "/settings - tampilkan pengaturan\n"
        "/resetsettings - reset pengaturan"
    ),
}

LOCALES: Dict[str, Dict[str, str]] = {"en": EN, "id": ID}

LANGUAGE_NAMES: Dict[str, str] = {"en": "English", "id": "Bahasa Indonesia"}


def t(lang: str, key: str, /, **replacements: Any) -> str:
    """Translate ``key`` into ``lang``."""
    locale = LOCALES.get(lang, EN)
    text = locale.get(key) or EN.get(key) or f"Missing translation: {key}"
    for placeholder, value in replacements.items():
        text = text.replace(f"{{{placeholder}}}", str(value))
    return text
