import hashlib
import logging
import os
import sys
from datetime import date, datetime, time as dt_time
from pathlib import Path

import pandas as pd
import streamlit as st

# Add current directory to path
sys.path.append(str(Path(__file__).parent))

from database import SessionLocal, init_db
from dashboard import _kpis, _prep, cat_spend, format_money, month_label, summary_strip, weekly_trend
from export import EmptyExportError, build_report, report_csv, report_filename
from gemini_service import (
    AIServiceError,
    gemini_enabled,
    generate_financial_insights,
    generate_financial_profile,
    parse_transaction_input,
    transcribe_audio,
)
from insights import available_months, budget_breakdown, filter_month, general_stats, month_key, month_totals
from ledger import (
    InvalidTransactionError,
    ProtectedCategoryError,
    add_category,
    add_recurring_item,
    apply_type_change,
    build_transaction,
    clear_all_data,
    decode_avatar,
    delete_transaction,
    encode_avatar,
    ensure_default_categories,
    get_transaction,
    get_user_profile,
    get_user_settings,
    list_categories,
    list_recurring_items,
    load_data,
    normalize_parsing_result,
    remove_category,
    remove_recurring_item,
    save_transaction,
    save_user_profile,
    save_user_settings,
    set_recurring_enabled,
    transaction_to_form,
)
from recurring import confirm_suggestion, dismiss_suggestion, pending_suggestion, suggestion_totals
from schemas import (
    INCOME_CATEGORY,
    PAYMENT_METHODS,
    Currency,
    TransactionType,
    get_category_emoji,
)
from storage import archive_report, list_reports, load_report

logging.basicConfig(
    level=os.getenv("PESITOS_LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("pesitos")

# --- Configuration ---
st.set_page_config(page_title="Pesitos", layout="centered", page_icon="💸")

TYPE_LABELS = {TransactionType.EXPENSE.value: "Gasto", TransactionType.INCOME.value: "Ingreso"}

# --- Database Session ---
init_db()

if "db" not in st.session_state:
    st.session_state.db = SessionLocal()

def get_db():
    return st.session_state.db

ensure_default_categories(get_db())

for key, default in {
    "entry_mode": None,        # None | "INPUT" | "REVIEW"
    "entry_form": {},
    "editing_id": None,
    "last_audio": None,
    "confirm_delete": None,
    "insights": {},
}.items():
    if key not in st.session_state:
        st.session_state[key] = default


def reset_entry():
    st.session_state["entry_mode"] = None
    st.session_state["entry_form"] = {}
    st.session_state["editing_id"] = None


def process_text(text: str, categories: list):
    if not text.strip():
        return
    with st.spinner("Analizando..."):
        try:
            result = parse_transaction_input(text)
        except AIServiceError as e:
            logger.error("parse failed: %s", e)
            st.error("No se pudo entender. Por favor intenta de nuevo.")
            return
    st.session_state["entry_form"] = normalize_parsing_result(result, categories)
    st.session_state["entry_mode"] = "REVIEW"
    st.rerun()


# --- Entry Panel ---
def render_entry_panel(categories: list):
    mode = st.session_state["entry_mode"]
    if mode is None:
        return

    with st.container(border=True):
        title = "✏️ Editar movimiento" if st.session_state["editing_id"] else "➕ Nuevo movimiento"
        st.subheader(title)

        if mode == "INPUT":
            ok, reason = gemini_enabled()
            if not ok:
                st.warning(f"La IA no está disponible ({reason}). Completa el formulario manualmente.")
                if st.button("Cargar manualmente"):
                    st.session_state["entry_form"] = {
                        "type": TransactionType.EXPENSE.value,
                        "category": categories[0] if categories else "Otros",
                        "currency": Currency.ARS.value,
                        "payment_method": "Efectivo",
                        "date": datetime.now(),
                    }
                    st.session_state["entry_mode"] = "REVIEW"
                    st.rerun()
            else:
                with st.form("entry_text"):
                    text = st.text_area("Contame qué gastaste o cobraste", placeholder="ej: Ayer gasté 4500 en el súper con débito")
                    submitted = st.form_submit_button("Procesar")
                if submitted:
                    process_text(text, categories)

                audio = st.audio_input("🎙️ O dictalo")
                if audio is not None:
                    data = audio.getvalue()
                    digest = hashlib.sha1(data).hexdigest()
                    if digest != st.session_state["last_audio"]:
                        st.session_state["last_audio"] = digest
                        try:
                            with st.spinner("Escuchando..."):
                                transcript = transcribe_audio(data, audio.type or "audio/wav")
                        except AIServiceError as e:
                            logger.error("transcription failed: %s", e)
                            st.error("No se pudo transcribir el audio. Por favor escribe.")
                        else:
                            st.caption(f"“{transcript}”")
                            process_text(transcript, categories)

        elif mode == "REVIEW":
            form = st.session_state["entry_form"]

            types = list(TYPE_LABELS)
            current_type = form.get("type") or TransactionType.EXPENSE.value
            new_type = st.radio(
                "Tipo *",
                types,
                index=types.index(current_type),
                format_func=TYPE_LABELS.get,
                horizontal=True,
            )
            if new_type != current_type:
                st.session_state["entry_form"] = apply_type_change(form, new_type, categories)
                st.rerun()

            with st.form("entry_review"):
                col1, col2 = st.columns([2, 1])
                amount = col1.number_input("Monto *", min_value=0.0, step=100.0, value=float(form.get("amount") or 0.0))
                currencies = [c.value for c in Currency]
                currency = col2.selectbox(
                    "Moneda", currencies,
                    index=currencies.index(form.get("currency")) if form.get("currency") in currencies else 0,
                )
                description = st.text_input("Descripción *", value=form.get("description") or "")

                current_dt = form.get("date") or datetime.now()
                col3, col4 = st.columns(2)
                tx_date = col3.date_input("Fecha *", value=current_dt.date(), format="DD/MM/YYYY")
                options = categories if new_type == TransactionType.EXPENSE.value else [INCOME_CATEGORY]
                category = col4.selectbox(
                    "Categoría *", options,
                    index=options.index(form.get("category")) if form.get("category") in options else 0,
                )

                col5, col6 = st.columns(2)
                payment_method = col5.selectbox(
                    "Método de pago *", PAYMENT_METHODS,
                    index=PAYMENT_METHODS.index(form.get("payment_method")) if form.get("payment_method") in PAYMENT_METHODS else 0,
                )
                subcategory = col6.text_input("Subcategoría", value=form.get("subcategory") or "")
                tags = st.text_input("Etiquetas (separadas por coma)", value=", ".join(form.get("tags") or []))

                c_save, c_cancel = st.columns(2)
                saved = c_save.form_submit_button("Guardar", type="primary", use_container_width=True)
                cancelled = c_cancel.form_submit_button("Cancelar", use_container_width=True)

            if cancelled:
                reset_entry()
                st.rerun()

            if saved:
                updated = {
                    **form,
                    "amount": amount,
                    "currency": currency,
                    "type": new_type,
                    "category": category,
                    "subcategory": subcategory,
                    "date": datetime.combine(tx_date, current_dt.time() if isinstance(current_dt, datetime) else dt_time()),
                    "description": description.strip(),
                    "payment_method": payment_method,
                    "tags": [t.strip() for t in tags.split(",") if t.strip()],
                }
                try:
                    tx = build_transaction(updated, existing_id=st.session_state["editing_id"])
                except InvalidTransactionError:
                    st.session_state["entry_form"] = updated
                    st.error("Por favor completa todos los campos obligatorios.")
                else:
                    save_transaction(get_db(), tx)
                    reset_entry()
                    st.toast("Movimiento guardado ✅")
                    st.rerun()


# --- Transaction List ---
def render_transaction_list(df_month: pd.DataFrame):
    if df_month.empty:
        st.info("No hay movimientos este mes.")
        return

    rows = df_month.sort_values("Date", ascending=False, kind="stable")
    for row in rows.itertuples():
        with st.container(border=True):
            c_icon, c_body, c_amount, c_actions = st.columns([1, 5, 3, 2])
            c_icon.markdown(f"### {get_category_emoji(row.Category)}")
            recurring_badge = " 🔁" if row.IsRecurring else ""
            c_body.markdown(f"**{row.Description}**{recurring_badge}")
            c_body.caption(f"{row.Category} • {row.Date:%d/%m/%Y}")
            sign = "-" if row.Type == TransactionType.EXPENSE.value else "+"
            color = "red" if row.Type == TransactionType.EXPENSE.value else "green"
            c_amount.markdown(f":{color}[**{sign}{format_money(row.Amount)}**]")
            c_amount.caption(row.PaymentMethod)

            if c_actions.button("✏️", key=f"edit_{row.ID}", help="Editar"):
                tx = get_transaction(get_db(), row.ID)
                if tx is not None:
                    st.session_state["entry_form"] = transaction_to_form(tx)
                    st.session_state["editing_id"] = tx.id
                    st.session_state["entry_mode"] = "REVIEW"
                    st.rerun()
            if c_actions.button("🗑️", key=f"del_{row.ID}", help="Eliminar"):
                st.session_state["confirm_delete"] = row.ID
                st.rerun()

            if st.session_state["confirm_delete"] == row.ID:
                st.warning("¿Estás seguro de eliminar esta transacción?")
                c_yes, c_no = st.columns(2)
                if c_yes.button("Sí, eliminar", key=f"yes_{row.ID}"):
                    delete_transaction(get_db(), row.ID)
                    st.session_state["confirm_delete"] = None
                    st.rerun()
                if c_no.button("No", key=f"no_{row.ID}"):
                    st.session_state["confirm_delete"] = None
                    st.rerun()


# --- Recurring Suggestion ---
def render_recurring_suggestion(df_prep: pd.DataFrame):
    db = get_db()
    if not pending_suggestion(db, df_prep):
        return

    items = [i for i in list_recurring_items(db) if i.is_enabled]
    totals = suggestion_totals(items)
    with st.container(border=True):
        st.subheader(f"📅 ¿Preparar presupuesto de {month_label(month_key(date.today()))}?")
        st.caption(f"Tienes {totals['count']} movimientos recurrentes listos para añadirse a este mes.")
        for item in items:
            sign = "+" if item.type == TransactionType.INCOME.value else "-"
            st.markdown(f"- {item.name} ({item.category}): **{sign}{format_money(item.amount)}**")
        st.caption(f"Resumen: +{format_money(totals['income'])} / -{format_money(totals['expense'])}")

        c_skip, c_add = st.columns(2)
        if c_skip.button("Saltar", use_container_width=True):
            dismiss_suggestion(db)
            st.rerun()
        if c_add.button("Añadir", type="primary", use_container_width=True):
            count = confirm_suggestion(db)
            st.toast(f"Se añadieron {count} movimientos recurrentes")
            st.rerun()


# --- Main App ---
db = get_db()
categories = list_categories(db)
settings = get_user_settings(db)

df = load_data(db)
df_prep = _prep(df)
current_key = month_key(date.today())
current_month_df = filter_month(df_prep, current_key)

head_left, head_right = st.columns([4, 1])
head_left.title("💸 Pesitos")
avatar = decode_avatar(settings.avatar)
if avatar:
    head_right.image(avatar, width=56)
else:
    head_right.markdown(f"### {settings.name[:1].upper() or 'U'}")

if st.button("➕ Nuevo movimiento", type="primary", use_container_width=True):
    reset_entry()
    st.session_state["entry_mode"] = "INPUT"
    st.rerun()

render_recurring_suggestion(df_prep)
render_entry_panel(categories)

tab1, tab2, tab3, tab4 = st.tabs(["📊 Panel", "🥧 Reportes", "🎯 Presupuesto", "👤 Usuario"])

with tab1:
    st.caption(f"📅 RESUMEN {month_label(current_key).split()[0].upper()}")
    _kpis(month_totals(current_month_df))
    st.subheader("Movimientos Recientes")
    render_transaction_list(current_month_df)

with tab2:
    months = available_months(df_prep)
    report_key = st.selectbox("Mes", months, format_func=lambda k: month_label(k).upper())
    report_df = filter_month(df_prep, report_key)

    summary_strip(month_totals(report_df))

    st.subheader("⬇️ Exportar Reporte")
    c_from, c_to = st.columns(2)
    start = c_from.date_input("Desde", value=date.today(), format="DD/MM/YYYY")
    end = c_to.date_input("Hasta", value=date.today(), format="DD/MM/YYYY")
    archive = st.checkbox("Guardar también una copia en el almacenamiento")
    try:
        report = build_report(df_prep, start, end)
    except EmptyExportError as e:
        st.caption(str(e))
    else:
        file_name = report_filename(start, end)
        if st.download_button("Descargar Excel (.csv)", report_csv(report), file_name=file_name, mime="text/csv"):
            if archive and not archive_report(file_name, report):
                st.warning("No se pudo guardar la copia del reporte.")

    saved = list_reports()
    if saved:
        with st.expander(f"Reportes guardados ({len(saved)})"):
            chosen = st.selectbox("Archivo", saved, key="saved_report")
            preview = load_report(chosen)
            if preview is None:
                st.caption("No se pudo abrir el reporte.")
            else:
                st.dataframe(preview, hide_index=True, use_container_width=True)

    st.subheader("💡 Insights IA")
    cached = st.session_state["insights"].get(report_key)
    if report_df.empty:
        st.caption("No hay suficientes datos este mes.")
    elif st.button("Analizar gastos", key="insights_btn"):
        with st.spinner("Analizando gastos..."):
            cached = generate_financial_insights(report_df)
        st.session_state["insights"][report_key] = cached
    if cached:
        icons = {"warning": "⚠️", "opportunity": "🚀", "neutral": "ℹ️"}
        for insight in cached:
            st.markdown(f"**{icons.get(insight.type, 'ℹ️')} {insight.title}**")
            st.caption(insight.description)
    elif cached is not None and not report_df.empty:
        st.caption("No hay suficientes datos este mes.")

    fig = cat_spend(report_df)
    if fig is not None:
        st.plotly_chart(fig, use_container_width=True)
    st.plotly_chart(weekly_trend(report_df), use_container_width=True)

with tab3:
    recurring_items = list_recurring_items(db)
    breakdown = budget_breakdown(current_month_df, recurring_items)

    st.subheader("🎯 Presupuesto Total (Mes Actual)")
    with st.container(border=True):
        st.markdown(f"**⬆️ INGRESOS TOTALES:** {format_money(breakdown['income'])}")
        st.caption(f"Fijos (Estimado): {format_money(breakdown['fixed_income_config'])}")
    with st.container(border=True):
        st.markdown(f"**⬇️ GASTOS TOTALES:** {format_money(breakdown['expense'])}")
        st.caption(
            f"Fijos (Estimado): {format_money(breakdown['fixed_expense_config'])} • "
            f"Fijos (Pagados): {format_money(breakdown['real_fixed_expense'])} • "
            f"Variables: {format_money(breakdown['real_variable_expense'])}"
        )
    balance = breakdown["balance"]
    color = "green" if balance >= 0 else "red"
    st.markdown(f"**Resultado Final** (Ahorro / Disponible): :{color}[**{format_money(balance)}**]")

    st.subheader("Movimientos Recurrentes Mensuales")
    st.caption("Estos ítems se te sugerirán para añadir al inicio de cada mes.")

    new_type = st.radio(
        "Tipo", list(TYPE_LABELS), horizontal=True, key="recurring_type",
        format_func=lambda t: "Ingreso Fijo" if t == TransactionType.INCOME.value else "Gasto Fijo",
    )
    with st.form("add_recurring", clear_on_submit=True):
        c_name, c_amount = st.columns([2, 1])
        name = c_name.text_input("Nombre (ej. Sueldo, Alquiler)")
        amount = c_amount.number_input("Monto", min_value=0.0, step=100.0)
        if new_type == TransactionType.EXPENSE.value:
            category = st.selectbox("Categoría", [c for c in categories if c != INCOME_CATEGORY] or ["Otros"])
        else:
            category = INCOME_CATEGORY
        if st.form_submit_button("➕ Agregar"):
            if add_recurring_item(db, name.strip(), amount, new_type, category) is None:
                st.warning("Completa nombre y monto.")
            else:
                st.rerun()

    if not recurring_items:
        st.caption("No hay movimientos recurrentes.")
    for item in recurring_items:
        c_on, c_name, c_amount, c_del = st.columns([1, 4, 3, 1])
        enabled = c_on.checkbox("Activo", value=item.is_enabled, key=f"on_{item.id}", label_visibility="collapsed")
        if enabled != item.is_enabled:
            set_recurring_enabled(db, item.id, enabled)
            st.rerun()
        dot = "🟢" if item.type == TransactionType.INCOME.value else "🔴"
        c_name.markdown(f"{dot} **{item.name}**  \n{item.category}")
        sign = "+" if item.type == TransactionType.INCOME.value else "-"
        c_amount.markdown(f"**{sign} {format_money(item.amount)}**")
        if c_del.button("🗑️", key=f"rdel_{item.id}"):
            remove_recurring_item(db, item.id)
            st.rerun()

with tab4:
    c_avatar, c_name = st.columns([1, 3])
    if avatar:
        c_avatar.image(avatar, width=96)
    uploaded = c_avatar.file_uploader("📷 Foto", type=["png", "jpg", "jpeg", "webp"], label_visibility="collapsed")
    if uploaded is not None:
        data_url = encode_avatar(uploaded.getvalue(), uploaded.type or "image/png")
        if data_url != settings.avatar:
            save_user_settings(db, settings.model_copy(update={"avatar": data_url}))
            st.rerun()

    name = c_name.text_input("Nombre", value=settings.name)
    if name.strip() and name != settings.name:
        save_user_settings(db, settings.model_copy(update={"name": name}))
        st.rerun()
    c_name.caption("Usuario Personal")

    st.subheader("⚙️ Gestionar Categorías")
    with st.form("add_category", clear_on_submit=True):
        c_new, c_btn = st.columns([3, 1])
        new_category = c_new.text_input("Nueva Categoría...", label_visibility="collapsed", placeholder="Nueva Categoría...")
        if c_btn.form_submit_button("➕"):
            if add_category(db, new_category):
                st.rerun()

    cols = st.columns(3)
    for idx, cat in enumerate(categories):
        col = cols[idx % 3]
        if col.button(f"{get_category_emoji(cat)} {cat}  ✕", key=f"cat_{cat}", help="Eliminar categoría"):
            try:
                remove_category(db, cat)
            except ProtectedCategoryError as e:
                st.warning(str(e))
            else:
                st.rerun()

    st.subheader("✨ Perfil Financiero")
    profile = get_user_profile(db)
    if st.button("Actualizar", key="profile_btn"):
        with st.spinner("Generando..."):
            new_profile = generate_financial_profile(df_prep)
        if new_profile:
            save_user_profile(db, new_profile)
            profile = new_profile
        else:
            st.info("Necesitamos al menos 5 transacciones para analizar tu estilo.")
    if not profile:
        st.caption("Aún no tienes un perfil generado.")
        st.caption("Necesitamos al menos 5 transacciones para analizar tu estilo.")
    else:
        st.markdown(f"#### {profile.persona_title}")
        st.markdown(f"_\"{profile.description}\"_")
        c_str, c_weak = st.columns(2)
        c_str.markdown("**Puntos Fuertes**")
        for s in profile.strengths:
            c_str.markdown(f"- {s}")
        c_weak.markdown("**A Mejorar**")
        for w in profile.weaknesses:
            c_weak.markdown(f"- {w}")

    st.subheader("Datos Generales")
    stats = general_stats(df_prep)
    g1, g2, g3 = st.columns(3)
    g1.metric("Total Transacciones", stats["count"])
    g2.metric("Fecha Primer Movimiento", stats["first_date"].strftime("%d/%m/%Y") if stats["first_date"] else "-")
    g3.metric("Moneda Principal", "ARS")

    st.divider()
    confirm = st.checkbox("Entiendo que esta acción no se puede deshacer")
    if st.button("Borrar Todos los Datos", type="secondary", disabled=not confirm):
        clear_all_data(db)
        st.session_state["insights"] = {}
        reset_entry()
        st.rerun()
