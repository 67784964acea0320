"""
Prompt composition and localized assistant messages.
"""

from .state import Language


MESSAGES = {
    Language.ENGLISH: {
        "greeting": (
            "Hello! I'm your AI farming assistant powered by advanced intelligence. "
            "I can help you with plant health, diseases, pesticides, fertilizers, weather "
            "advice, and crop management. Single tap to speak with me, or long press for "
            "quick options. What would you like to know about farming?"
        ),
        "help": (
            "I can help with plant diseases, pest control, fertilizer recommendations, crop "
            "management, soil health, irrigation, weather planning, and market advice. "
            "Just ask me anything about farming!"
        ),
        "listening": "I'm listening carefully to your farming question. Please speak clearly...",
        "not_heard": "I had trouble hearing you. Please try again.",
        "no_question": "I did not hear any question. Please try again.",
        "backend_error": "I am having trouble answering your question. Please try again later.",
        "output_error": (
            "I couldn't process your request. Please try asking about specific farming "
            "topics like plant diseases, pest control, or crop management."
        ),
        "language_switched": "Language switched to English",
        "capture_unavailable": "Voice recognition is not available on this device.",
    },
    Language.HINDI: {
        "greeting": (
            "नमस्ते! मैं आपकी AI कृषि सहायक हूं जो उन्नत बुद्धिमत्ता से संचालित है। "
            "मैं पौधों के स्वास्थ्य, बीमारियों, कीटनाशकों, उर्वरकों, मौसम की सलाह और फसल "
            "प्रबंधन में आपकी सहायता कर सकती हूं। बोलने के लिए एक बार टैप करें, या विकल्पों "
            "के लिए लॉन्ग प्रेस करें। खेती के बारे में आप क्या जानना चाहते हैं?"
        ),
        "help": (
            "मैं पौधों की बीमारियों, कीट नियंत्रण, उर्वरक सुझाव, फसल प्रबंधन, मिट्टी के "
            "स्वास्थ्य, सिंचाई, मौसम योजना और बाज़ार सलाह में मदद कर सकती हूं। खेती के "
            "बारे में मुझसे कुछ भी पूछें!"
        ),
        "listening": "मैं आपके कृषि प्रश्न को ध्यान से सुन रही हूं। कृपया स्पष्ट रूप से बोलें...",
        "not_heard": "मुझे आपकी आवाज़ सुनने में समस्या हो रही है। कृपया पुनः प्रयास करें।",
        "no_question": "मुझे कोई प्रश्न सुनाई नहीं दिया। कृपया पुनः प्रयास करें।",
        "backend_error": "मुझे आपके प्रश्न का उत्तर देने में समस्या हो रही है। कृपया बाद में पुनः प्रयास करें।",
        "output_error": (
            "मैं आपके अनुरोध को संसाधित नहीं कर सकी। कृपया पौधों की बीमारियों, कीट "
            "नियंत्रण, या फसल प्रबंधन जैसे विशिष्ट कृषि विषयों के बारे में पूछें।"
        ),
        "language_switched": "भाषा हिंदी में बदल गई है",
        "capture_unavailable": "इस डिवाइस पर आवाज़ पहचान उपलब्ध नहीं है।",
    },
}


_PREAMBLES = {
    Language.ENGLISH: (
        "You are an expert agricultural advisor. Answer the farmer's question with:\n"
        "- Practical and actionable advice\n"
        "- Focus on Indian farming practices\n"
        "- Suggest both organic and chemical solutions when appropriate\n"
        "- Include safety guidelines\n"
        "- Keep response to 2-3 sentences for voice delivery\n"
        "- Be specific about dosages, timing, and methods\n"
        "\n"
        "Farmer's question: "
    ),
    Language.HINDI: (
        "आप एक विशेषज्ञ कृषि सलाहकार हैं। किसान के प्रश्न का उत्तर दें:\n"
        "- व्यावहारिक और क्रियान्वित करने योग्य सलाह दें\n"
        "- स्थानीय भारतीय कृषि पद्धतियों पर ध्यान दें\n"
        "- जैविक और रासायनिक दोनों समाधान सुझाएं\n"
        "- सुरक्षा दिशानिर्देशों को शामिल करें\n"
        "- उत्तर 2-3 वाक्यों में रखें\n"
        "\n"
        "किसान का प्रश्न: "
    ),
}


def message(language: Language, key: str) -> str:
    """Localized user-facing message"""
    return MESSAGES[language][key]


def compose_prompt(raw_question: str, language: Language) -> str:
    """
    Build the backend prompt: fixed advisor preamble + the literal question.

    The caller rejects empty questions before getting here.
    """
    return _PREAMBLES[language] + raw_question
