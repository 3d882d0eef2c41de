"""
Built-in form templates.

Template fields reference their controlling field through a template-local
key; instantiate_fields() resolves those keys to real field ids.
"""
from typing import Dict, List
import logging

from sqlalchemy.orm import Session

from formbuilder.data_access import backend_call
from formbuilder.models.form import Field, FieldType, Form
from formbuilder.services.field_types import normalize_options

logger = logging.getLogger(__name__)

YES_NO = ["نعم", "لا"]


def _field(key, label, type, required=True, placeholder=None, options=None, depends_on=None, show_when=None):
    return {
        "key": key,
        "label": label,
        "type": type,
        "required": required,
        "placeholder": placeholder,
        "options": options,
        "depends_on": depends_on,
        "show_when": show_when,
    }


FORM_TEMPLATES: Dict[str, dict] = {
    "housing": {
        "name": "نموذج طلب امتلاك مسكن",
        "description": "نموذج شامل لجمع معلومات المستأجرين الراغبين في امتلاك مسكن",
        "fields": [
            _field("full_name", "الاسم الكامل", FieldType.TEXT, placeholder="أدخل اسمك الكامل"),
            _field("phone", "رقم الهاتف", FieldType.PHONE, placeholder="+216 XX XXX XXX"),
            _field("email", "البريد الإلكتروني", FieldType.EMAIL, placeholder="example@email.com"),
            _field("age_group", "الفئة العمرية", FieldType.SELECT,
                   options=["أقل من 25", "25-35", "36-45", "46-55", "أكثر من 55"]),
            _field("marital_status", "الحالة العائلية", FieldType.SELECT, options=["أعزب", "متزوج", "مطلق", "أرمل"]),
            _field("household_size", "عدد أفراد الأسرة", FieldType.NUMBER, placeholder="عدد أفراد الأسرة"),
            _field("occupation", "المهنة / القطاع", FieldType.SELECT,
                   options=["موظف حكومي", "موظف خاص", "صاحب عمل", "طالب", "متقاعد", "غير ذلك"]),
            _field("current_location", "موقع السكن الحالي", FieldType.LOCATION,
                   placeholder="اضغط على الخريطة لتحديد موقع سكنك الحالي"),
            _field("current_housing", "نوع السكن الحالي", FieldType.SELECT, options=["كراء", "سكن عائلي", "سكن وظيفي"]),
            _field("monthly_rent", "قيمة الكراء الشهري", FieldType.NUMBER, placeholder="بالدينار التونسي"),
            _field("desired_location", "الموقع المرغوب لاقتناء المسكن", FieldType.LOCATION,
                   placeholder="اضغط على الخريطة لتحديد الموقع المرغوب"),
            _field("housing_type", "نوع المسكن المطلوب", FieldType.CHECKBOX, options=["شقة", "منزل", "فيلا", "قطعة أرض"]),
            _field("max_budget", "الميزانية القصوى المتوقعة", FieldType.NUMBER, placeholder="بالدينار التونسي"),
            _field("financing", "طريقة التمويل", FieldType.CHECKBOX, options=["تمويل بنكي", "دفع ذاتي", "الاثنين"]),
            _field("monthly_income", "الدخل الشهري التقريبي", FieldType.NUMBER, placeholder="بالدينار التونسي"),
            _field("has_loan", "هل يوجد قرض حالي؟", FieldType.SELECT, options=YES_NO),
            _field("loan_installment", "في صورة نعم، قيمة القسط الشهري", FieldType.NUMBER, required=False,
                   placeholder="بالدينار التونسي", depends_on="has_loan", show_when="نعم"),
            _field("timeline", "متى تنوي اقتناء المسكن؟", FieldType.SELECT,
                   options=["فوراً", "خلال 6 أشهر", "خلال سنة", "أكثر من سنة"]),
            _field("wants_advisor", "هل ترغب في التواصل مع مستشار؟", FieldType.SELECT, options=YES_NO),
            _field("notes", "ملاحظات إضافية", FieldType.TEXTAREA, required=False, placeholder="أي ملاحظات أخرى"),
        ],
    },
    "contact": {
        "name": "نموذج تواصل",
        "description": "نموذج بسيط لجمع معلومات التواصل من العملاء",
        "fields": [
            _field("full_name", "الاسم الكامل", FieldType.TEXT, placeholder="أدخل اسمك الكامل"),
            _field("email", "البريد الإلكتروني", FieldType.EMAIL, placeholder="example@email.com"),
            _field("phone", "رقم الهاتف", FieldType.PHONE, placeholder="+216 XX XXX XXX"),
            _field("subject", "الموضوع", FieldType.SELECT, options=["استفسار", "شكوى", "اقتراح", "طلب خدمة"]),
            _field("message", "الرسالة", FieldType.TEXTAREA, placeholder="اكتب رسالتك هنا"),
        ],
    },
    "job_application": {
        "name": "نموذج طلب توظيف",
        "description": "نموذج شامل لطلبات التوظيف",
        "fields": [
            _field("full_name", "الاسم الكامل", FieldType.TEXT, placeholder="أدخل اسمك الكامل"),
            _field("email", "البريد الإلكتروني", FieldType.EMAIL, placeholder="example@email.com"),
            _field("phone", "رقم الهاتف", FieldType.PHONE, placeholder="+216 XX XXX XXX"),
            _field("address", "العنوان", FieldType.TEXT, placeholder="العنوان الكامل"),
            _field("degree", "المؤهل العلمي", FieldType.SELECT, options=["ثانوي", "بكالوريوس", "ماستر", "دكتوراه"]),
            _field("experience_years", "سنوات الخبرة", FieldType.NUMBER, placeholder="عدد سنوات الخبرة"),
            _field("position", "الوظيفة المطلوبة", FieldType.TEXT, placeholder="اسم الوظيفة"),
            _field("skills", "المهارات", FieldType.TEXTAREA, placeholder="اذكر مهاراتك الرئيسية"),
            _field("notes", "ملاحظات إضافية", FieldType.TEXTAREA, required=False, placeholder="أي معلومات إضافية"),
        ],
    },
}


def list_templates() -> List[dict]:
    return [
        {
            "key": key,
            "name": template["name"],
            "description": template["description"],
            "field_count": len(template["fields"]),
        }
        for key, template in FORM_TEMPLATES.items()
    ]


def instantiate_fields(db: Session, form: Form, template_key: str) -> List[Field]:
    """Insert the template's fields for an already-saved form, in one commit"""
    template = FORM_TEMPLATES[template_key]

    with backend_call(db, "insert template fields", form_id=form.id, template=template_key):
        created: Dict[str, Field] = {}
        for index, spec in enumerate(template["fields"], start=1):
            field = Field(
                form_id=form.id,
                label=spec["label"],
                type=spec["type"],
                required=spec["required"],
                placeholder=spec["placeholder"],
                options=normalize_options(spec["type"], spec["options"]),
                order=index,
                enabled=True,
            )
            db.add(field)
            created[spec["key"]] = field
        db.flush()

        for spec in template["fields"]:
            if spec["depends_on"]:
                created[spec["key"]].depends_on_field_id = created[spec["depends_on"]].id
                created[spec["key"]].show_when_value = spec["show_when"]

        db.commit()

    logger.info(f"Created {len(created)} fields from template '{template_key}' for form {form.id}")
    return list(created.values())
