"""Per-language prompts, labels and speech phrases."""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "EN"


@dataclass(frozen=True)
class LocalizedStrings:
    language_code: str
    voice_id: str
    prompt_text: str
    ui_label: str
    processing_phrase: str
    error_phrase: str


_TABLE: dict[str, LocalizedStrings] = {
    "EN": LocalizedStrings(
        language_code="EN",
        voice_id="en-GB",
        prompt_text=(
            "You are an AI assistant helping a blind person. Your task is to read the "
            "screen's content, extract key information, and inform the person about what "
            "is happening on the screen. After your analysis, the application will read it "
            "out loud. Be concise. Start with: 'The screen shows...'"
        ),
        ui_label="Read\nScreen",
        processing_phrase="One moment...",
        error_phrase="Something went wrong, try again",
    ),
    "PL": LocalizedStrings(
        language_code="PL",
        voice_id="pl-PL",
        prompt_text=(
            "Jesteś asystentem AI, który pomaga osobie niewidomej. Twoje zadanie polega na "
            "odczytaniu zawartości ekranu, ekstrakcję kluczowych informacji, i poinformowania "
            "tej osoby o tym, co dzieje się na ekranie. Po Twojej analizie, aplikacja odczyta "
            "ją na głos. Bądź zwięzły. Zacznij od: 'Ekran pokazuje...'"
        ),
        ui_label="Odczyt\nEkranu",
        processing_phrase="Chwileczkę...",
        error_phrase="Coś poszło nie tak, spróbuj ponownie",
    ),
    "ES": LocalizedStrings(
        language_code="ES",
        voice_id="es-ES",
        prompt_text=(
            "Eres un asistente de IA que ayuda a una persona ciega. Tu tarea es leer el "
            "contenido de la pantalla, extraer información clave e informar a la persona sobre "
            "lo que está sucediendo en la pantalla. Después de tu análisis, la aplicación lo "
            "leerá en voz alta. Sé conciso. Comienza con: 'La pantalla muestra...'"
        ),
        ui_label="Leer\nPantalla",
        processing_phrase="Un momento...",
        error_phrase="Algo salió mal, intenta de nuevo",
    ),
    "PT": LocalizedStrings(
        language_code="PT",
        voice_id="pt-BR",
        prompt_text=(
            "Você é um assistente de IA ajudando uma pessoa cega. Sua tarefa é ler o conteúdo "
            "da tela, extrair informações importantes e informar a pessoa sobre o que está "
            "acontecendo na tela. Após sua análise, o aplicativo lerá em voz alta. Seja "
            "conciso. Comece com: 'A tela mostra...'"
        ),
        ui_label="Ler\nTela",
        processing_phrase="Um momento...",
        error_phrase="Algo deu errado, tente novamente",
    ),
    "HI": LocalizedStrings(
        language_code="HI",
        voice_id="hi-IN",
        prompt_text=(
            "आप एक AI सहायक हैं जो एक नेत्रहीन व्यक्ति की मदद कर रहे हैं। आपका कार्य स्क्रीन की "
            "सामग्री को पढ़ना, मुख्य जानकारी निकालना और व्यक्ति को बताना है कि स्क्रीन पर क्या हो "
            "रहा है। आपके विश्लेषण के बाद, एप्लिकेशन इसे जोर से पढ़ेगा। संक्षिप्त रहें। इस तरह शुरू "
            "करें: 'स्क्रीन दिखाती है...'"
        ),
        ui_label="स्क्रीन\nपढ़ें",
        processing_phrase="एक पल...",
        error_phrase="कुछ गलत हुआ, फिर से कोशिश करें",
    ),
    "BN": LocalizedStrings(
        language_code="BN",
        voice_id="bn-IN",
        prompt_text=(
            "আপনি একজন AI সহায়ক যিনি একজন অন্ধ ব্যক্তিকে সাহায্য করছেন। আপনার কাজ হল স্ক্রিনের "
            "বিষয়বস্তু পড়া, মূল তথ্য বের করা এবং ব্যক্তিকে জানানো যে স্ক্রিনে কী ঘটছে। আপনার "
            "বিশ্লেষণের পরে, অ্যাপ্লিকেশনটি এটি জোরে পড়বে। সংক্ষিপ্ত থাকুন। এভাবে শুরু করুন: "
            "'স্ক্রিনটি দেখায়...'"
        ),
        ui_label="স্ক্রীন\nপড়ুন",
        processing_phrase="একটু অপেক্ষা করুন...",
        error_phrase="কিছু ভুল হয়েছে, আবার চেষ্টা করুন",
    ),
    "AR": LocalizedStrings(
        language_code="AR",
        voice_id="ar-EG",
        prompt_text=(
            "أنت مساعد ذكاء اصطناعي تساعد شخصًا كفيفًا. مهمتك هي قراءة محتوى الشاشة واستخراج "
            "المعلومات الأساسية وإبلاغ الشخص بما يحدث على الشاشة. بعد تحليلك، سيقرأ التطبيق "
            "المحتوى بصوت عالٍ. كن موجزًا. ابدأ بـ: 'تظهر الشاشة...'"
        ),
        ui_label="قراءة\nالشاشة",
        processing_phrase="لحظة من فضلك...",
        error_phrase="حدث خطأ ما، حاول مرة أخرى",
    ),
    "SW": LocalizedStrings(
        language_code="SW",
        voice_id="sw-KE",
        prompt_text=(
            "Wewe ni msaidizi wa AI unayesaidia mtu asiyeona. Kazi yako ni kusoma maudhui ya "
            "skrini, kuchambua taarifa muhimu, na kumjulisha mtu kuhusu kinachoendelea kwenye "
            "skrini. Baada ya uchambuzi wako, programu itasoma kwa sauti. Fupi. Anza na: "
            "'Skrini inaonyesha...'"
        ),
        ui_label="Soma\nSkrini",
        processing_phrase="Subiri kidogo...",
        error_phrase="Kuna hitilafu, jaribu tena",
    ),
    "UR": LocalizedStrings(
        language_code="UR",
        voice_id="ur-PK",
        prompt_text=(
            "آپ ایک AI معاون ہیں جو ایک نابینا شخص کی مدد کر رہے ہیں۔ آپ کا کام اسکرین کے مواد کو "
            "پڑھنا، اہم معلومات نکالنا اور شخص کو بتانا ہے کہ اسکرین پر کیا ہو رہا ہے۔ آپ کے تجزیے "
            "کے بعد، ایپلیکیشن اسے بلند آواز میں پڑھے گی۔ مختصر رہیں۔ اس طرح شروع کریں: "
            "'اسکرین دکھاتی ہے...'"
        ),
        ui_label="اسکرین\nپڑھیں",
        processing_phrase="ایک لمحہ...",
        error_phrase="کچھ غلط ہوا، دوبارہ کوشش کریں",
    ),
    "VI": LocalizedStrings(
        language_code="VI",
        voice_id="vi-VN",
        prompt_text=(
            "Bạn là trợ lý AI giúp đỡ người mù. Nhiệm vụ của bạn là đọc nội dung màn hình, "
            "trích xuất thông tin quan trọng và thông báo cho người đó về những gì đang xảy ra "
            "trên màn hình. Sau khi phân tích, ứng dụng sẽ đọc to nội dung. Hãy ngắn gọn. Bắt "
            "đầu bằng: 'Màn hình hiển thị...'"
        ),
        ui_label="Đọc\nMàn hình",
        processing_phrase="Chờ chút...",
        error_phrase="Có lỗi xảy ra, thử lại",
    ),
    "ID": LocalizedStrings(
        language_code="ID",
        voice_id="id-ID",
        prompt_text=(
            "Anda adalah asisten AI yang membantu orang buta. Tugas Anda adalah membaca konten "
            "layar, mengekstrak informasi penting, dan memberi tahu orang tersebut tentang apa "
            "yang terjadi di layar. Setelah analisis Anda, aplikasi akan membacanya dengan "
            "keras. Ringkas. Mulai dengan: 'Layar menampilkan...'"
        ),
        ui_label="Baca\nLayar",
        processing_phrase="Sebentar...",
        error_phrase="Terjadi kesalahan, coba lagi",
    ),
    "AM": LocalizedStrings(
        language_code="AM",
        voice_id="am-ET",
        prompt_text=(
            "እርስዎ ዓይነ ስውር ሰውን የሚረዳ AI ረዳት ነዎት። ስራዎ የማያ ገጹን ይዘት ማንበብ፣ ቁልፍ መረጃን "
            "ማውጣት እና ሰውየው በማያ ገጹ ላይ ስለሚከሰተው ነገር ማሳወቅ ነው። ከትንተናዎ በኋላ አፕሊኬሽኑ "
            "በጮክ ያነባል። አጭር ይሁኑ። እንደዚህ ይጀምሩ: 'ማያ ገጹ ያሳያል...'"
        ),
        ui_label="ማያ ገጽ\nአንብብ",
        processing_phrase="ትንሽ ይጠብቁ...",
        error_phrase="ስህተት ተፈጥሯል፣ እንደገና ይሞክሩ",
    ),
    "TL": LocalizedStrings(
        language_code="TL",
        voice_id="fil-PH",
        prompt_text=(
            "Ikaw ay isang AI assistant na tumutulong sa isang bulag na tao. Ang iyong tungkulin "
            "ay basahin ang nilalaman ng screen, kunin ang mahalagang impormasyon, at ipaalam sa "
            "tao kung ano ang nangyayari sa screen. Pagkatapos ng iyong pagsusuri, babasahin ng "
            "application ito nang malakas. Maging maigsi. Magsimula sa: 'Ang screen ay "
            "nagpapakita...'"
        ),
        ui_label="Basahin\nang Screen",
        processing_phrase="Sandali lang...",
        error_phrase="May naganap na mali, subukan ulit",
    ),
}


def supported_languages() -> list[str]:
    return list(_TABLE)


def normalize_language(code: str | None) -> str:
    """Return the table key for ``code``, or the default language."""
    key = (code or "").strip().upper()
    if key in _TABLE:
        return key
    if key:
        logger.warning("Unknown language %r, falling back to %s", code, DEFAULT_LANGUAGE)
    return DEFAULT_LANGUAGE


def lookup(code: str | None) -> LocalizedStrings:
    return _TABLE[normalize_language(code)]
