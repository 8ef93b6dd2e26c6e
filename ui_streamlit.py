"""
Temporary Streamlit UI for Ask REST Data (test only).
Launch with: streamlit run ui_streamlit.py
"""
from __future__ import annotations
import asyncio
import json
import streamlit as st
import pandas as pd

from pipeline.main import run_query


st.title("Ask REST Data (Test UI)")
question = st.text_input("Ask about your todos, users or posts", placeholder="show completed todos")

if st.button("Run Query"):
    if not question.strip():
        st.warning("Please enter a question.")
    else:
        result = asyncio.run(run_query(question))

        if result.get("error"):
            st.error(result["error"])
        else:
            st.success("Query executed successfully.")

        st.subheader("Parsed Query")
        parse = result.get("parse") or {}
        st.write(f"Table: `{parse.get('table') or 'N/A'}`")
        st.code(parse.get("query") or "N/A")

        st.subheader("Result")
        data = result.get("data")
        if data is None:
            st.write("No result.")
        else:
            try:
                rows = json.loads(data)
            except json.JSONDecodeError:
                st.text(data)
            else:
                if isinstance(rows, list) and rows:
                    st.dataframe(pd.DataFrame(rows))
                elif isinstance(rows, list):
                    st.info("No rows matched. Try a different query or check if the data exists.")
                else:
                    st.json(rows)
