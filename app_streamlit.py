from datetime import date, timedelta

import pandas as pd
import streamlit as st

from infra.auth import credenciales_validas
from infra.config import load_config
from infra.export import FORMATO_MONEDA, dataframe_a_excel_bytes
from infra.logger import get_logger
from infra.remoto import ClienteRemoto, ErrorRemoto
from infra.repositorio import buscar_proyectos
from logic.conciliacion import Parametros
from logic.periodos import RANGOS, resolver_periodo
from logic.recibos import actualizar_estado, etiqueta_parcela, filtrar_recibos, obras_distintas
from logic.reporte import ControlGeneraciones, cargar_recibos, ejecutar
from logic.resumen import (
    apilado_proyecto_categoria,
    filas_a_dataframe,
    indicadores,
    indicadores_pagos,
    indicadores_recibos,
    por_categoria,
    por_producto,
    por_proyecto,
    por_tipo_pago,
    tendencia,
)
from logic.tabla import filtrar, ordenar

log = get_logger()


def formatear_moneda(x) -> str:
    if pd.isnull(x):
        return ""
    return "R$ " + f"{x:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")


# =========================
# Configuración inicial
# =========================
cfg = load_config()
st.set_page_config(page_title=cfg.app.title, layout=cfg.app.page_layout)

# =========================
# Acceso
# =========================
if not st.session_state.get("autenticado"):
    st.title(cfg.app.title)
    with st.form("login"):
        usuario = st.text_input("Usuario")
        clave = st.text_input("Clave", type="password")
        entrar = st.form_submit_button("Entrar")
    if entrar:
        if credenciales_validas(usuario, clave):
            st.session_state["autenticado"] = True
            st.rerun()
        else:
            st.error("Credenciales inválidas")
    st.stop()


@st.cache_resource
def obtener_cliente() -> ClienteRemoto:
    return ClienteRemoto.desde_config(cfg.remoto)


@st.cache_data(ttl=600)
def obtener_proyectos() -> list[dict]:
    return buscar_proyectos(obtener_cliente(), cfg.remoto.tam_pagina)


try:
    cliente = obtener_cliente()
except ValueError as e:
    st.error(f"Almacén remoto sin configurar: {e}")
    st.stop()

if "control" not in st.session_state:
    st.session_state["control"] = ControlGeneraciones()
control: ControlGeneraciones = st.session_state["control"]

# =========================
# Navegación
# =========================
VISTA_TABLERO = "tablero"
VISTA_RECIBOS = "recibos"
opciones = [VISTA_TABLERO] + [v.clave for v in cfg.vistas] + [VISTA_RECIBOS]
titulos = {VISTA_TABLERO: "Tablero", VISTA_RECIBOS: "Cuentas a cobrar"}
titulos.update({v.clave: v.titulo for v in cfg.vistas})

with st.sidebar:
    st.markdown(f"**{cfg.app.title}**")
    vista_sel = st.radio("Vista", opciones, format_func=lambda k: titulos[k], key="vista")
    if st.button("Salir"):
        st.session_state.clear()
        st.rerun()

st.title(titulos[vista_sel])

# =========================
# Filtros globales
# =========================
col_r, col_i, col_f, col_p = st.columns(4)
with col_r:
    rango = st.selectbox("Período", list(RANGOS), index=1, format_func=lambda k: RANGOS[k])
with col_i:
    ini_custom = st.date_input("Desde", value=date.today() - timedelta(days=30), disabled=rango != "custom")
with col_f:
    fin_custom = st.date_input("Hasta", value=date.today(), disabled=rango != "custom")

try:
    fecha_inicio, fecha_fin = resolver_periodo(rango, ini_custom, fin_custom)
except ValueError as e:
    st.error(str(e))
    st.stop()

proyecto_id = None
if vista_sel != VISTA_RECIBOS:
    with col_p:
        try:
            proyectos = obtener_proyectos()
        except ErrorRemoto as e:
            log.error("No se pudieron cargar los proyectos: %s", e)
            proyectos = []
        nombres = {str(p["id"]): p.get("name") or str(p["id"]) for p in proyectos}
        proyecto_id = st.selectbox(
            "Proyecto",
            [None] + list(nombres),
            format_func=lambda k: "General (todas las obras)" if k is None else nombres[k],
        )


def correr(params: Parametros):
    """Solo vuelve a consultar cuando cambian los parámetros de la vista."""
    clave = (vista_sel, params)
    if st.session_state.get("params") != clave:
        with st.spinner("Cargando datos financieros..."):
            resultado = ejecutar(
                cliente, params, control,
                tam_pagina=cfg.remoto.tam_pagina,
                max_claves=cfg.remoto.max_claves_por_consulta,
            )
        if resultado is not None:
            st.session_state["params"] = clave
            st.session_state["resultado"] = resultado
    return st.session_state.get("resultado")


def mostrar_tabla(df: pd.DataFrame, columnas: list[str]):
    fmt = cfg.app.fecha_vista_formato
    formatos = {"fecha": lambda x: x.strftime(fmt) if pd.notnull(x) else "", "importe": formatear_moneda}
    st.dataframe(
        df[columnas].style.format({k: v for k, v in formatos.items() if k in columnas}),
        use_container_width=True,
    )


def boton_excel(df: pd.DataFrame, nombre: str):
    xls_bytes = dataframe_a_excel_bytes(
        df,
        sheet_name="Relatorio",
        formato_columnas_fecha={"fecha": "DD/MM/YYYY"},
        formato_columnas_moneda={"importe": FORMATO_MONEDA},
    )
    st.download_button("Descargar (xlsx)", data=xls_bytes, file_name=f"{nombre}.xlsx")


# =========================
# Tablero
# =========================
if vista_sel == VISTA_TABLERO:
    params = Parametros(fecha_inicio, fecha_fin, proyecto_id=proyecto_id)
    resultado = correr(params)
    if resultado is None or not resultado.ok:
        st.error("No se pudieron cargar los datos. Intente nuevamente.")
        st.stop()

    df = filas_a_dataframe(resultado.filas)
    kpi = indicadores(df)
    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Costo total", formatear_moneda(kpi["total"]))
    k2.metric("Movimientos", f"{kpi['cantidad']:,}".replace(",", "."))
    k3.metric("Ticket medio", formatear_moneda(kpi["ticket_medio"]))
    k4.metric("Costo medio mensual", formatear_moneda(kpi["promedio_mensual"]))

    st.subheader("Evolución de gastos")
    st.area_chart(tendencia(df), x="fecha", y="importe")

    c1, c2 = st.columns(2)
    with c1:
        st.subheader("Por categoría")
        st.bar_chart(por_categoria(df, top=cfg.conciliacion.top_categorias), x="categoria", y="importe")
    with c2:
        st.subheader("Por tipo de pago")
        st.bar_chart(por_tipo_pago(df), x="tipo", y="importe")

    st.subheader("Por proyecto")
    st.dataframe(por_proyecto(df), use_container_width=True)
    apilado = apilado_proyecto_categoria(df)
    if not apilado.empty:
        st.bar_chart(apilado.drop(columns=["total"]))

    st.subheader("Movimientos recientes")
    mostrar_tabla(df.sort_values("fecha", ascending=False).head(10), ["fecha", "nombre", "categoria", "proyecto", "importe"])

# =========================
# Cuentas a cobrar
# =========================
elif vista_sel == VISTA_RECIBOS:
    clave_recibos = (fecha_inicio, fecha_fin)
    if st.session_state.get("recibos_params") != clave_recibos:
        try:
            st.session_state["recibos"] = cargar_recibos(cliente, fecha_inicio, fecha_fin, cfg.remoto.tam_pagina)
            st.session_state["recibos_params"] = clave_recibos
        except ErrorRemoto as e:
            log.error("Error cargando recibos: %s", e)
            st.error("No se pudieron cargar los recibos.")
            st.stop()
    recibos = st.session_state["recibos"]

    f1, f2, f3 = st.columns(3)
    with f1:
        texto = st.text_input("Buscar documento, obra o categoría", "")
    with f2:
        estado = st.selectbox("Estado", [None] + cfg.conciliacion.estados_recibo, format_func=lambda e: e or "Todos")
    with f3:
        obra = st.selectbox("Obra", [None] + obras_distintas(recibos), format_func=lambda o: o or "Todas las obras")

    visibles = filtrar_recibos(recibos, texto, estado, obra)
    kpi = indicadores_recibos(visibles, cfg.conciliacion.estado_recibido)
    k1, k2, k3 = st.columns(3)
    k1.metric("Total a cobrar", formatear_moneda(kpi["total"]))
    k2.metric("Cobrado", formatear_moneda(kpi["recibido"]))
    k3.metric("Pendiente", formatear_moneda(kpi["pendiente"]))

    tabla = pd.DataFrame([{
        "codigo": r.codigo,
        "vencimiento": r.fecha_vencimiento,
        "documento": r.numero_documento,
        "obra": r.obra,
        "categoria": r.categoria,
        "parcela": etiqueta_parcela(r),
        "valor": r.valor,
        "estado": r.estado,
    } for r in visibles])
    st.dataframe(tabla, use_container_width=True)

    st.markdown("**Cambiar estado**")
    u1, u2, u3 = st.columns(3)
    with u1:
        codigo = st.selectbox("Recibo", [r.codigo for r in visibles])
    with u2:
        nuevo = st.selectbox("Nuevo estado", cfg.conciliacion.estados_recibo)
    with u3:
        if st.button("Actualizar", disabled=codigo is None):
            try:
                st.session_state["recibos"] = actualizar_estado(
                    cliente, recibos, codigo, nuevo, cfg.conciliacion.estados_recibo
                )
                st.rerun()
            except ErrorRemoto:
                st.error("Error al actualizar el estado. Intente nuevamente.")

# =========================
# Vistas de movimientos
# =========================
else:
    vista = cfg.vista(vista_sel)
    params = Parametros(
        fecha_inicio,
        fecha_fin,
        proyecto_id=proyecto_id,
        tipos_pago=frozenset(vista.tipos_pago),
        incluir=tuple(vista.incluir),
        excluir=tuple(vista.excluir),
        profundidad=vista.profundidad,
    )
    resultado = correr(params)
    if resultado is None or not resultado.ok:
        st.error("No se pudieron cargar los datos. Intente nuevamente.")
        st.stop()

    columnas = ["fecha", "nombre", "categoria", "numero_nota", "proyecto", "importe", "estado", "cuota"]
    if vista.profundidad == "item":
        columnas = ["fecha", "razon_social", "cnpj_proveedor", "numero_nota", "item_descripcion", "item_cantidad", "proyecto", "importe", "estado"]
    elif vista.profundidad == "nota":
        columnas = ["fecha", "razon_social", "cnpj_proveedor", "numero_nota", "categoria", "proyecto", "importe", "estado"]

    # ---- Filtros por columna ----
    with st.expander("Filtros por columna"):
        cols_f = st.columns(len(columnas))
        filtros = {c: cf.text_input(c, "", key=f"filtro_{vista.clave}_{c}") for c, cf in zip(columnas, cols_f)}

    o1, o2 = st.columns(2)
    with o1:
        campo_default = cfg.conciliacion.orden_campo_default
        campo = st.selectbox(
            "Ordenar por", [None] + columnas,
            index=(columnas.index(campo_default) + 1 if campo_default in columnas else 0),
        )
    with o2:
        direccion = st.radio(
            "Dirección", ["asc", "desc"], horizontal=True,
            index=1 if cfg.conciliacion.orden_direccion_default == "desc" else 0,
        )

    filas = ordenar(filtrar(resultado.filas, filtros, cfg.app.fecha_vista_formato), campo, direccion)
    df = filas_a_dataframe(filas)

    pagos = indicadores_pagos(df)
    m1, m2, m3 = st.columns(3)
    m1.metric("Total", formatear_moneda(pagos["pagado"] + pagos["pendiente"]))
    m2.metric("Pagado", formatear_moneda(pagos["pagado"]))
    m3.metric("Pendiente", formatear_moneda(pagos["pendiente"]))
    mostrar_tabla(df, columnas)

    if vista.profundidad == "item" and not df.empty:
        # ---- Agregado por producto + proyecto ----
        st.subheader("Por producto")
        productos = por_producto(df)
        buscado = st.text_input("Buscar producto", "", key=f"producto_{vista.clave}")
        if buscado.strip():
            productos = productos[productos["producto"].str.contains(buscado.strip(), case=False, regex=False)]
        st.dataframe(
            productos.style.format({
                "importe": formatear_moneda,
                "valor_unitario": formatear_moneda,
                "ultima_fecha": lambda x: x.strftime(cfg.app.fecha_vista_formato) if pd.notnull(x) else "",
                "notas": lambda n: ", ".join(n),
            }),
            use_container_width=True,
        )
        st.subheader("Categorías principales")
        st.bar_chart(por_categoria(df, top=cfg.conciliacion.top_categorias_items), x="categoria", y="importe")
    elif not df.empty:
        st.subheader("Por categoría")
        st.bar_chart(por_categoria(df, top=10), x="categoria", y="importe")

    boton_excel(df[columnas], vista.clave)
