"""Message catalogs keyed by message key, one dict per language."""

MESSAGES_FA: dict[str, str] = {
    # Generic
    "BAD_REQUEST": "درخواست نامعتبر است",
    "UNAUTHORIZED": "دسترسی غیرمجاز",
    "FORBIDDEN": "شما اجازه دسترسی به این منبع را ندارید",
    "NOT_FOUND": "منبع درخواستی یافت نشد",
    "CONFLICT": "تعارض در داده‌ها",
    "VALIDATION_ERROR": "خطای اعتبارسنجی",
    "INTERNAL_SERVER_ERROR": "خطای داخلی سرور",
    # Auth
    "INVALID_TOKEN": "توکن نامعتبر یا منقضی شده است",
    "INVALID_CREDENTIALS": "ایمیل یا رمز عبور اشتباه است",
    "EMAIL_TAKEN": "این ایمیل قبلا ثبت شده است",
    "USER_DISABLED": "حساب کاربری غیرفعال است",
    # Lookups
    "OFFER_NOT_FOUND": "پیشنهاد یافت نشد",
    "BUY_AD_NOT_FOUND": "درخواست خرید یافت نشد",
    "ACTIVE_BUY_AD_NOT_FOUND": "درخواست خرید فعال یافت نشد",
    "ACCOUNT_NOT_FOUND": "اکانت مربوطه یافت نشد یا غیرفعال است",
    # Access
    "ACCOUNT_ACCESS_DENIED": "دسترسی به اکانت مورد نظر ندارید",
    "OWN_BUY_AD_OFFER": "شما نمی‌توانید به درخواست خرید خودتان پیشنهاد دهید",
    "OFFER_EDIT_FORBIDDEN": "شما فقط می‌توانید پیشنهادهای خود را ویرایش کنید",
    "OFFER_DELETE_FORBIDDEN": "شما فقط می‌توانید پیشنهادهای خود را حذف کنید",
    "ONLY_BUYER_CAN_ACCEPT": "فقط صاحب درخواست خرید می‌تواند پیشنهاد را بپذیرد",
    "ONLY_BUYER_CAN_REJECT": "فقط صاحب درخواست خرید می‌تواند پیشنهاد را رد کند",
    "ONLY_BUYER_CAN_COUNTER": "فقط صاحب درخواست خرید می‌تواند پیشنهاد متقابل دهد",
    "ONLY_BUYER_CAN_MARK_SEEN": "فقط خریدار می‌تواند پیشنهاد را علامت‌گذاری کند",
    "BUY_AD_OFFERS_FORBIDDEN": "شما اجازه مشاهده پیشنهادات این درخواست خرید را ندارید",
    "RATING_FORBIDDEN": "فقط طرفین معامله می‌توانند امتیاز دهند",
    # State
    "DUPLICATE_ACTIVE_OFFER": "شما قبلاً برای این درخواست خرید پیشنهاد فعال دارید",
    "OFFER_NOT_EDITABLE": "این پیشنهاد قابل ویرایش نیست",
    "OFFER_NOT_WITHDRAWABLE": "این پیشنهاد قابل حذف نیست",
    "OFFER_NOT_PENDING": "فقط پیشنهادهای در حال انتظار قابل پاسخ هستند",
    "COUNTER_NOT_ALLOWED": "برای این نوع درخواست خرید، پیشنهاد متقابل مجاز نیست",
    "RATING_NOT_ALLOWED": "فقط معاملات پذیرفته‌شده قابل امتیازدهی هستند",
    # Validation
    "INVALID_OFFER": "پیشنهاد با شرایط درخواست خرید مطابقت ندارد",
    "INVALID_BUY_AD_CONDITIONS": "شرایط درخواست خرید نامعتبر است",
    "UNIT_MISMATCH": "واحد اندازه‌گیری باید \"{unit}\" باشد",
    "SIMPLE_DIRECT_ONLY": "برای این درخواست خرید فقط پیشنهاد مستقیم مجاز است",
    "AUCTION_BID_ONLY": "برای مزایده فقط پیشنهاد مزایده مجاز است",
    "AUCTION_MIN_PRICE": "پیشنهاد قیمت باید بیشتر از حداقل قیمت پایه ({price}) باشد",
    "TENDER_BID_ONLY": "برای مناقصه فقط پیشنهاد مناقصه مجاز است",
    "NEGOTIATION_TYPES_ONLY": "برای مذاکره فقط پیشنهاد مستقیم یا مذاکره مجاز است",
    "MIN_SELLER_RATING": "برای ارسال پیشنهاد نیاز به حداقل امتیاز {rating} دارید",
    "REQUIRED_CERTIFICATIONS": "گواهی‌های مورد نیاز: {certifications}",
    # Results
    "OFFER_DELETED": "پیشنهاد با موفقیت حذف شد",
    "OFFER_ACCEPTED": "پیشنهاد با موفقیت پذیرفته شد و مکالمه جدید ایجاد گردید",
    "OFFER_REJECTED": "پیشنهاد با موفقیت رد شد",
    "OFFER_MARKED_SEEN": "پیشنهاد به عنوان دیده شده علامت‌گذاری شد",
    "OFFER_RATED": "امتیاز شما ثبت شد",
    "OFFERS_EXPIRED": "تعداد {count} پیشنهاد منقضی شد",
    "NO_EXPIRED_OFFERS": "هیچ پیشنهاد منقضی‌شده‌ای یافت نشد",
    # Generated text
    "DEFAULT_BUY_AD_NAME": "درخواست خرید",
    "DEFAULT_SELLER_NAME": "فروشنده",
    "CURRENCY": "ریال",
    "ACCEPTANCE_CONVERSATION_TITLE": "پیشنهاد برای \"{name}\" پذیرفته شد",
    "ACCEPTANCE_MESSAGE": "پیشنهاد شما برای \"{name}\" با قیمت {price} ریال پذیرفته شد. لطفاً برای ادامه هماهنگی‌ها پیام دهید.",
    "COUNTER_OFFER_DESCRIPTION": "پیشنهاد متقابل: {price} ریال",
    "REJECTION_REASON": "دلیل رد: {reason}",
    "PUBLIC_CTA_MESSAGE": "برای مشاهده جزئیات کامل و تماس با فروشنده ثبت‌نام کنید",
    "SUCCESS_STORY_TITLE": "معامله موفق: {name}",
    "SUCCESS_STORY_DESCRIPTION": "فروشنده \"{seller}\" با موفقیت پیشنهاد خود را به ارزش {price} ریال به فروش رساند.",
}

MESSAGES_EN: dict[str, str] = {
    "BAD_REQUEST": "Bad request",
    "UNAUTHORIZED": "Unauthorized access",
    "FORBIDDEN": "You don't have permission to access this resource",
    "NOT_FOUND": "Requested resource not found",
    "CONFLICT": "Data conflict",
    "VALIDATION_ERROR": "Validation error",
    "INTERNAL_SERVER_ERROR": "Internal server error",
    # Auth
    "INVALID_TOKEN": "Invalid or expired token",
    "INVALID_CREDENTIALS": "Invalid email or password",
    "EMAIL_TAKEN": "Email already registered",
    "USER_DISABLED": "Account is disabled",
    "OFFER_NOT_FOUND": "Offer not found",
    "BUY_AD_NOT_FOUND": "Buy request not found",
    "ACTIVE_BUY_AD_NOT_FOUND": "No active buy request found",
    "ACCOUNT_NOT_FOUND": "Account not found or inactive",
    "ACCOUNT_ACCESS_DENIED": "You don't have access to this account",
    "OWN_BUY_AD_OFFER": "You cannot make an offer on your own buy request",
    "OFFER_EDIT_FORBIDDEN": "You can only edit your own offers",
    "OFFER_DELETE_FORBIDDEN": "You can only delete your own offers",
    "ONLY_BUYER_CAN_ACCEPT": "Only the buy request owner can accept offers",
    "ONLY_BUYER_CAN_REJECT": "Only the buy request owner can reject offers",
    "ONLY_BUYER_CAN_COUNTER": "Only the buy request owner can make a counter-offer",
    "ONLY_BUYER_CAN_MARK_SEEN": "Only the buyer can mark an offer as seen",
    "BUY_AD_OFFERS_FORBIDDEN": "You are not allowed to view offers on this buy request",
    "RATING_FORBIDDEN": "Only the parties of the deal can rate it",
    "DUPLICATE_ACTIVE_OFFER": "You already have an active offer on this buy request",
    "OFFER_NOT_EDITABLE": "This offer can no longer be edited",
    "OFFER_NOT_WITHDRAWABLE": "This offer can no longer be withdrawn",
    "OFFER_NOT_PENDING": "Only pending offers can be answered",
    "COUNTER_NOT_ALLOWED": "Counter-offers are not allowed for this type of buy request",
    "RATING_NOT_ALLOWED": "Only accepted deals can be rated",
    "INVALID_OFFER": "The offer does not satisfy the buy request conditions",
    "INVALID_BUY_AD_CONDITIONS": "The buy request conditions are invalid",
    "UNIT_MISMATCH": "Unit must be \"{unit}\"",
    "SIMPLE_DIRECT_ONLY": "Only direct offers are allowed for this buy request",
    "AUCTION_BID_ONLY": "Only auction bids are allowed for an auction",
    "AUCTION_MIN_PRICE": "Proposed price must be at least the base price ({price})",
    "TENDER_BID_ONLY": "Only tender bids are allowed for a tender",
    "NEGOTIATION_TYPES_ONLY": "Only direct or negotiation offers are allowed for a negotiation",
    "MIN_SELLER_RATING": "A seller rating of at least {rating} is required",
    "REQUIRED_CERTIFICATIONS": "Required certifications: {certifications}",
    "OFFER_DELETED": "Offer deleted successfully",
    "OFFER_ACCEPTED": "Offer accepted and a new conversation was started",
    "OFFER_REJECTED": "Offer rejected successfully",
    "OFFER_MARKED_SEEN": "Offer marked as seen",
    "OFFER_RATED": "Your rating was saved",
    "OFFERS_EXPIRED": "{count} offers expired",
    "NO_EXPIRED_OFFERS": "No expired offers found",
    "DEFAULT_BUY_AD_NAME": "Buy request",
    "DEFAULT_SELLER_NAME": "Seller",
    "CURRENCY": "IRR",
    "ACCEPTANCE_CONVERSATION_TITLE": "Offer for \"{name}\" accepted",
    "ACCEPTANCE_MESSAGE": "Your offer for \"{name}\" at {price} IRR was accepted. Please send a message to continue.",
    "COUNTER_OFFER_DESCRIPTION": "Counter-offer: {price} IRR",
    "REJECTION_REASON": "Rejection reason: {reason}",
    "PUBLIC_CTA_MESSAGE": "Sign up to see full details and contact the seller",
    "SUCCESS_STORY_TITLE": "Successful deal: {name}",
    "SUCCESS_STORY_DESCRIPTION": "Seller \"{seller}\" closed a deal worth {price} IRR.",
}

MESSAGES_AR: dict[str, str] = {
    "BAD_REQUEST": "طلب غير صالح",
    "UNAUTHORIZED": "وصول غير مصرح",
    "FORBIDDEN": "ليس لديك إذن للوصول إلى هذا المورد",
    "NOT_FOUND": "الموارد المطلوبة غير موجودة",
    "CONFLICT": "تعارض في البيانات",
    "VALIDATION_ERROR": "خطأ في التحقق من الصحة",
    "INTERNAL_SERVER_ERROR": "خطأ داخلي في الخادم",
    # Auth
    "INVALID_TOKEN": "رمز غير صالح أو منتهي الصلاحية",
    "INVALID_CREDENTIALS": "البريد الإلكتروني أو كلمة المرور غير صحيحة",
    "EMAIL_TAKEN": "البريد الإلكتروني مسجل بالفعل",
    "USER_DISABLED": "الحساب معطل",
    "OFFER_NOT_FOUND": "العرض غير موجود",
    "BUY_AD_NOT_FOUND": "طلب الشراء غير موجود",
    "ACTIVE_BUY_AD_NOT_FOUND": "لا يوجد طلب شراء نشط",
    "ACCOUNT_NOT_FOUND": "الحساب غير موجود أو غير نشط",
    "ACCOUNT_ACCESS_DENIED": "ليس لديك وصول إلى هذا الحساب",
    "OWN_BUY_AD_OFFER": "لا يمكنك تقديم عرض على طلب الشراء الخاص بك",
    "DUPLICATE_ACTIVE_OFFER": "لديك بالفعل عرض نشط على طلب الشراء هذا",
    "OFFER_NOT_PENDING": "يمكن الرد فقط على العروض المعلقة",
    "INVALID_OFFER": "العرض لا يستوفي شروط طلب الشراء",
    "UNIT_MISMATCH": "يجب أن تكون الوحدة \"{unit}\"",
    "OFFER_ACCEPTED": "تم قبول العرض وبدء محادثة جديدة",
    "OFFER_REJECTED": "تم رفض العرض بنجاح",
    "DEFAULT_SELLER_NAME": "البائع",
}
